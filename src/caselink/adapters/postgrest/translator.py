"""Translate hosted rows into domain records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from caselink.domain.model import (
    ClientIdentity,
    NoteRecord,
    NoteRow,
    RecordingRecord,
    RecordingRow,
    SessionOccurrence,
    SessionRecord,
)
from caselink.domain.timestamps import parse_timestamp

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .schema import ClientRow, RecordingRowModel, SessionNoteRow, SessionRow


def translate_client(row: ClientRow) -> ClientIdentity:
    return ClientIdentity(
        id=row.id,
        canonical_name=row.name,
        name_variants=frozenset(row.aliases),
        first_name=row.first_name,
        last_name=row.last_name,
        owner_id=row.owner_id,
    )


def translate_session(row: SessionRow) -> SessionOccurrence:
    return SessionOccurrence(
        id=row.id,
        client_id=row.client_id,
        timestamp=parse_timestamp(row.date),
        session_type=row.type,
        notes=row.notes or "",
        client_name=row.client_name,
        owner_id=row.owner_id,
    )


def session_to_row(session: SessionOccurrence) -> dict[str, object]:
    return {
        "id": session.id,
        "owner_id": session.owner_id,
        "client_id": session.client_id,
        "client_name": session.client_name,
        "date": session.timestamp.isoformat() if session.timestamp else None,
        "type": session.session_type,
        "notes": session.notes,
    }


def _hint(client_id: str | None, client_name: str | None, names: Mapping[str, str]) -> str:
    if client_id is not None and client_id in names:
        return names[client_id]
    return client_name or ""


def translate_session_orphan(row: SessionRow, names: Mapping[str, str]) -> SessionRecord:
    return SessionRecord(
        id=row.id,
        client_name_hint=_hint(row.client_id, row.client_name, names),
        timestamp=parse_timestamp(row.date),
        client_id=row.client_id,
    )


def translate_note_orphan(row: SessionNoteRow, names: Mapping[str, str]) -> NoteRecord:
    return NoteRecord(
        id=row.id,
        client_name_hint=_hint(row.client_id, row.client_name, names),
        timestamp=parse_timestamp(row.session_date) or parse_timestamp(row.created_at),
        client_id=row.client_id,
        session_id=row.session_id,
    )


def translate_recording_orphan(
    row: RecordingRowModel, names: Mapping[str, str]
) -> RecordingRecord:
    return RecordingRecord(
        id=row.id,
        client_name_hint=_hint(row.client_id, row.client_name, names),
        timestamp=parse_timestamp(row.created_at),
        client_id=row.client_id,
        session_id=row.session_id,
        title=row.title,
        transcript=row.transcript,
    )


def translate_note(row: SessionNoteRow) -> NoteRow:
    return NoteRow(
        id=row.id,
        client_id=row.client_id,
        session_id=row.session_id,
        content=row.content or "",
        occurred_at=parse_timestamp(row.session_date) or parse_timestamp(row.created_at),
        client_name=row.client_name,
    )


def translate_recording(row: RecordingRowModel) -> RecordingRow:
    return RecordingRow(
        id=row.id,
        client_id=row.client_id,
        session_id=row.session_id,
        transcript=row.transcript,
        created_at=parse_timestamp(row.created_at),
        title=row.title,
        client_name=row.client_name,
        audio_url=row.audio_url,
    )
