"""Record types read from the store and from backup snapshots.

The reconciliation subsystem never owns these rows. Clients and sessions are
read-only inputs; orphan records are transient views built per run that carry
an untrusted client name hint next to the row's current associations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from caselink.domain.model.enums import RecordKind, RecordSource

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True, kw_only=True)
class ClientIdentity:
    """Canonical client identity as stored by ordinary client CRUD."""

    id: str
    canonical_name: str
    name_variants: frozenset[str] = frozenset()
    first_name: str | None = None
    last_name: str | None = None
    owner_id: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class SessionOccurrence:
    """One scheduled or held appointment."""

    id: str
    client_id: str | None
    timestamp: datetime | None
    session_type: str | None = None
    notes: str = ""
    client_name: str | None = None
    owner_id: str | None = None


@dataclass(kw_only=True)
class OrphanRecord:
    """A row that is missing its client and/or session association.

    ``client_id`` and ``session_id`` describe the row as it currently sits in the
    store; ``client_name_hint`` is the raw name used to resolve it.
    """

    KIND: ClassVar[RecordKind]
    LINKS_SESSIONS: ClassVar[bool] = False

    id: str
    client_name_hint: str = ""
    timestamp: datetime | None = None
    client_id: str | None = None
    source: RecordSource = RecordSource.LIVE

    @property
    def kind(self) -> RecordKind:
        return self.KIND

    @property
    def links_sessions(self) -> bool:
        return self.LINKS_SESSIONS


@dataclass(kw_only=True)
class SessionRecord(OrphanRecord):
    KIND: ClassVar[RecordKind] = RecordKind.SESSION


@dataclass(kw_only=True)
class NoteRecord(OrphanRecord):
    KIND: ClassVar[RecordKind] = RecordKind.NOTE
    LINKS_SESSIONS: ClassVar[bool] = True

    session_id: str | None = None


@dataclass(kw_only=True)
class RecordingRecord(OrphanRecord):
    KIND: ClassVar[RecordKind] = RecordKind.RECORDING
    LINKS_SESSIONS: ClassVar[bool] = True

    session_id: str | None = None
    title: str | None = None
    transcript: str | None = None


def current_session_id(record: OrphanRecord) -> str | None:
    """Return the record's session association, if its kind carries one."""

    if isinstance(record, NoteRecord | RecordingRecord):
        return record.session_id
    return None


@dataclass(frozen=True, slots=True, kw_only=True)
class NoteRow:
    """Explicit session note as read for the feed."""

    id: str
    client_id: str | None
    session_id: str | None
    content: str
    occurred_at: datetime | None
    client_name: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class RecordingRow:
    """Transcribed recording as read for the feed and transcript cleanup."""

    id: str
    client_id: str | None
    session_id: str | None
    transcript: str | None
    created_at: datetime | None
    title: str | None = None
    client_name: str | None = None
    audio_url: str | None = None
