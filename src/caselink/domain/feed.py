"""Unified feed builder: notes, recordings and sessions as one timeline.

Precedence is note > recording > session, applied twice:

- per id: entries are inserted into an id-keyed map in precedence order and
  the first entry for an id wins; later ones are recorded as collisions
- per logical event: a linked entry's event is its session id, an unlinked
  entry's event is ``(client_id, calendar day)``; an entry is dropped when a
  higher-precedence kind already claimed its event

The builder is a pure fold; collisions are returned, not raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from caselink.domain.model import FEED_PRECEDENCE, FeedEntry, RecordKind
from caselink.domain.timestamps import calendar_day, ensure_utc
from caselink.domain.transcripts import decode_transcript

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from datetime import date

    from caselink.domain.model import NoteRow, RecordingRow, SessionOccurrence
    from caselink.domain.transcripts import TranscriptPayload

log = logging.getLogger(__name__)

RECORDING_ID_PREFIX = "recording-"
SESSION_ID_PREFIX = "session-"

_OLDEST = datetime.min.replace(tzinfo=UTC)

type TranscriptDecoder = Callable[[object], TranscriptPayload]


@dataclass(frozen=True, slots=True)
class FeedCollision:
    """Two sources produced the same feed id; ``kept_kind`` won."""

    entry_id: str
    kept_kind: RecordKind
    dropped_kind: RecordKind


@dataclass(slots=True)
class FeedResult:
    entries: list[FeedEntry] = field(default_factory=list[FeedEntry])
    collisions: list[FeedCollision] = field(default_factory=list[FeedCollision])
    suppressed: int = 0


@dataclass(slots=True)
class _EventClaims:
    sessions: dict[str, RecordKind] = field(default_factory=dict[str, RecordKind])
    days: dict[tuple[str, date], RecordKind] = field(
        default_factory=dict[tuple[str, "date"], RecordKind]
    )

    def is_claimed(self, entry: FeedEntry) -> bool:
        if entry.session_id is not None:
            owner = self.sessions.get(entry.session_id)
            if owner is not None and owner is not entry.source_kind:
                return True
        day_key = _day_key(entry)
        if day_key is not None:
            owner = self.days.get(day_key)
            if owner is not None and owner is not entry.source_kind:
                return True
        return False

    def claim(self, entry: FeedEntry) -> None:
        if entry.session_id is not None:
            self.sessions.setdefault(entry.session_id, entry.source_kind)
        day_key = _day_key(entry)
        if day_key is not None:
            self.days.setdefault(day_key, entry.source_kind)


def _day_key(entry: FeedEntry) -> tuple[str, date] | None:
    if entry.client_id is None or entry.occurred_at is None:
        return None
    return entry.client_id, calendar_day(entry.occurred_at)


def _client_name(
    client_id: str | None, fallback: str | None, client_names: Mapping[str, str]
) -> str:
    if client_id is not None and client_id in client_names:
        return client_names[client_id]
    return fallback or ""


def note_entries(
    notes: Iterable[NoteRow], client_names: Mapping[str, str]
) -> list[FeedEntry]:
    return [
        FeedEntry(
            id=note.id,
            client_id=note.client_id,
            client_name=_client_name(note.client_id, note.client_name, client_names),
            occurred_at=ensure_utc(note.occurred_at) if note.occurred_at else None,
            content=note.content,
            source_kind=RecordKind.NOTE,
            source_id=note.id,
            session_id=note.session_id,
        )
        for note in notes
    ]


def recording_entries(
    recordings: Iterable[RecordingRow],
    client_names: Mapping[str, str],
    transcript_decoder: TranscriptDecoder = decode_transcript,
) -> list[FeedEntry]:
    """Recordings with a non-empty transcript, deduplicated by recording id."""

    seen: set[str] = set()
    entries: list[FeedEntry] = []
    for recording in recordings:
        if recording.id in seen:
            continue
        seen.add(recording.id)
        if recording.transcript is None:
            continue
        payload = transcript_decoder(recording.transcript)
        if not payload.display_text.strip():
            continue
        entries.append(
            FeedEntry(
                id=f"{RECORDING_ID_PREFIX}{recording.id}",
                client_id=recording.client_id,
                client_name=_client_name(
                    recording.client_id, recording.client_name, client_names
                ),
                occurred_at=ensure_utc(recording.created_at) if recording.created_at else None,
                content=payload.display_text,
                source_kind=RecordKind.RECORDING,
                source_id=recording.id,
                session_id=recording.session_id,
            )
        )
    return entries


def session_entries(
    sessions: Iterable[SessionOccurrence], client_names: Mapping[str, str]
) -> list[FeedEntry]:
    return [
        FeedEntry(
            id=f"{SESSION_ID_PREFIX}{session.id}",
            client_id=session.client_id,
            client_name=_client_name(session.client_id, session.client_name, client_names),
            occurred_at=ensure_utc(session.timestamp) if session.timestamp else None,
            content=session.notes,
            source_kind=RecordKind.SESSION,
            source_id=session.id,
            session_id=session.id,
        )
        for session in sessions
    ]


def build_feed(
    notes: Iterable[NoteRow],
    recordings: Iterable[RecordingRow],
    sessions: Iterable[SessionOccurrence],
    transcript_decoder: TranscriptDecoder = decode_transcript,
    *,
    client_names: Mapping[str, str] | None = None,
) -> FeedResult:
    """Merge the three sources into one list ordered by ``occurred_at`` descending."""

    names = client_names or {}
    by_kind = {
        RecordKind.NOTE: note_entries(notes, names),
        RecordKind.RECORDING: recording_entries(recordings, names, transcript_decoder),
        RecordKind.SESSION: session_entries(sessions, names),
    }

    result = FeedResult()
    merged: dict[str, FeedEntry] = {}
    claims = _EventClaims()
    for kind in FEED_PRECEDENCE:
        accepted: list[FeedEntry] = []
        for entry in by_kind[kind]:
            if claims.is_claimed(entry):
                result.suppressed += 1
                continue
            existing = merged.get(entry.id)
            if existing is not None:
                log.warning(
                    "Feed id collision on %s: keeping %s, dropping %s",
                    entry.id,
                    existing.source_kind,
                    entry.source_kind,
                )
                result.collisions.append(
                    FeedCollision(
                        entry_id=entry.id,
                        kept_kind=existing.source_kind,
                        dropped_kind=entry.source_kind,
                    )
                )
                continue
            merged[entry.id] = entry
            accepted.append(entry)
        # Claims land after the whole kind so entries of one kind never suppress each other.
        for entry in accepted:
            claims.claim(entry)

    result.entries = sorted(
        merged.values(),
        key=lambda entry: entry.occurred_at or _OLDEST,
        reverse=True,
    )
    return result
