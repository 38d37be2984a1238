"""Ports for the durable record store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from caselink.domain.model import (
        ClientIdentity,
        NoteRow,
        OrphanRecord,
        RecordingRow,
        RecordKind,
        SessionOccurrence,
    )


@runtime_checkable
class RecordStore(Protocol):
    """Opaque keyed store the reconciliation pass reads from and writes to.

    ``get_orphans`` filters on null association fields. ``update_field`` is a
    targeted single-field write; with ``only_if_null`` it only succeeds while
    the field is still null, succeeds as a no-op when the same value is
    already stored, and raises ``ConflictError`` for a different value.
    """

    def get_clients(self, *, owner_id: str | None = None) -> list[ClientIdentity]: ...

    def get_orphans(self, kind: RecordKind) -> list[OrphanRecord]: ...

    def get_records(self, kind: RecordKind, ids: Iterable[str]) -> list[OrphanRecord]: ...

    def get_sessions(self, *, client_id: str | None = None) -> list[SessionOccurrence]: ...

    def update_field(
        self,
        kind: RecordKind,
        record_id: str,
        field: str,
        value: object,
        *,
        only_if_null: bool = True,
    ) -> None: ...

    def upsert(self, kind: RecordKind, records: Sequence[SessionOccurrence]) -> int: ...


@runtime_checkable
class BatchRecordStore(RecordStore, Protocol):
    """Store that can flush a group of single-field writes concurrently."""

    def update_fields(
        self,
        kind: RecordKind,
        writes: Sequence[tuple[str, str, object, bool]],
    ) -> list[Exception | None]:
        """Apply ``(record_id, field, value, only_if_null)`` writes.

        Returns one entry per write, ``None`` on success or the raised error.
        """
        ...


@runtime_checkable
class FeedSource(Protocol):
    """Read-only queries used to assemble the unified feed."""

    def get_clients(self, *, owner_id: str | None = None) -> list[ClientIdentity]: ...

    def list_notes(
        self, *, owner_id: str | None = None, client_id: str | None = None
    ) -> list[NoteRow]: ...

    def list_recordings(
        self, *, owner_id: str | None = None, client_id: str | None = None
    ) -> list[RecordingRow]: ...

    def list_sessions(
        self, *, owner_id: str | None = None, client_id: str | None = None
    ) -> list[SessionOccurrence]: ...


@runtime_checkable
class PracticeStore(RecordStore, FeedSource, Protocol):
    """Store serving both the reconciliation passes and the feed reads."""
