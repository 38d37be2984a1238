"""Translate backup snapshot rows into domain records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from caselink.domain.model import (
    NoteRecord,
    RecordingRecord,
    RecordSource,
    SessionOccurrence,
    SessionRecord,
)
from caselink.domain.timestamps import combine_date_time, parse_timestamp

if TYPE_CHECKING:
    from .schema import AppointmentSnapshot, RecordingSnapshot, SessionNoteSnapshot


def translate_appointment(row: AppointmentSnapshot) -> SessionRecord:
    return SessionRecord(
        id=row.id,
        client_name_hint=row.client_name or "",
        timestamp=combine_date_time(row.date, row.time),
        client_id=row.client_id,
        source=RecordSource.BACKUP,
    )


def appointment_to_session(row: AppointmentSnapshot) -> SessionOccurrence:
    return SessionOccurrence(
        id=row.id,
        client_id=row.client_id,
        timestamp=combine_date_time(row.date, row.time),
        session_type=row.type,
        notes=row.notes or "",
        client_name=row.client_name,
        owner_id=row.owner_id,
    )


def translate_session_note(row: SessionNoteSnapshot) -> NoteRecord:
    return NoteRecord(
        id=row.id,
        client_name_hint=row.client_name or "",
        timestamp=parse_timestamp(row.session_date) or parse_timestamp(row.created_at),
        client_id=row.client_id,
        session_id=row.session_id,
        source=RecordSource.BACKUP,
    )


def translate_recording(row: RecordingSnapshot) -> RecordingRecord:
    return RecordingRecord(
        id=row.id,
        client_name_hint=row.client_name or "",
        timestamp=parse_timestamp(row.created_at),
        client_id=row.client_id,
        session_id=row.session_id,
        title=row.title,
        transcript=row.transcript,
        source=RecordSource.BACKUP,
    )
