"""Public domain model surface."""

from __future__ import annotations

from caselink.domain.model.enums import (
    FEED_PRECEDENCE,
    RECONCILE_ORDER,
    RecordKind,
    RecordSource,
)
from caselink.domain.model.feed import FeedEntry
from caselink.domain.model.records import (
    ClientIdentity,
    NoteRecord,
    NoteRow,
    OrphanRecord,
    RecordingRecord,
    RecordingRow,
    SessionOccurrence,
    SessionRecord,
    current_session_id,
)

__all__ = [
    "FEED_PRECEDENCE",
    "RECONCILE_ORDER",
    "ClientIdentity",
    "FeedEntry",
    "NoteRecord",
    "NoteRow",
    "OrphanRecord",
    "RecordKind",
    "RecordSource",
    "RecordingRecord",
    "RecordingRow",
    "SessionOccurrence",
    "SessionRecord",
    "current_session_id",
]
