"""In-memory record store and builders shared by reconciliation tests."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from caselink.domain.errors import ConflictError, StoreError
from caselink.domain.model import (
    ClientIdentity,
    NoteRecord,
    NoteRow,
    OrphanRecord,
    RecordingRecord,
    RecordingRow,
    RecordKind,
    SessionOccurrence,
    SessionRecord,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


def at(day: int, hour: int = 9, *, month: int = 1, year: int = 2025) -> datetime:
    return datetime(year, month, day, hour, 0, tzinfo=UTC)


def client(client_id: str, name: str, **kwargs: object) -> ClientIdentity:
    return ClientIdentity(id=client_id, canonical_name=name, **kwargs)  # type: ignore[arg-type]


def session(
    session_id: str,
    client_id: str | None,
    timestamp: datetime | None,
    **kwargs: object,
) -> SessionOccurrence:
    return SessionOccurrence(  # type: ignore[arg-type]
        id=session_id, client_id=client_id, timestamp=timestamp, **kwargs
    )


@dataclass
class FakeRecordStore:
    """Dict-backed ``RecordStore``/``FeedSource`` with the fill-only write contract."""

    clients: list[ClientIdentity] = field(default_factory=list[ClientIdentity])
    sessions: dict[str, SessionOccurrence] = field(default_factory=dict[str, SessionOccurrence])
    records: dict[RecordKind, dict[str, OrphanRecord]] = field(
        default_factory=lambda: {kind: {} for kind in RecordKind}
    )
    notes: list[NoteRow] = field(default_factory=list[NoteRow])
    recordings: list[RecordingRow] = field(default_factory=list[RecordingRow])
    fail_on: set[tuple[str, str]] = field(default_factory=set[tuple[str, str]])
    fail_reads: bool = False
    fail_upsert: bool = False
    writes: list[tuple[RecordKind, str, str, object]] = field(
        default_factory=list[tuple[RecordKind, str, str, object]]
    )
    upserted: list[SessionOccurrence] = field(default_factory=list[SessionOccurrence])

    def add(self, *orphans: OrphanRecord) -> None:
        for orphan in orphans:
            self.records[orphan.kind][orphan.id] = orphan
            if isinstance(orphan, SessionRecord):
                self.sessions.setdefault(
                    orphan.id,
                    SessionOccurrence(
                        id=orphan.id, client_id=orphan.client_id, timestamp=orphan.timestamp
                    ),
                )

    def add_sessions(self, *sessions: SessionOccurrence) -> None:
        for item in sessions:
            self.sessions[item.id] = item

    def record(self, kind: RecordKind, record_id: str) -> OrphanRecord:
        return self.records[kind][record_id]

    # RecordStore -----------------------------------------------------------

    def get_clients(self, *, owner_id: str | None = None) -> list[ClientIdentity]:
        self._check_reads()
        return [item for item in self.clients if owner_id is None or item.owner_id == owner_id]

    def get_orphans(self, kind: RecordKind) -> list[OrphanRecord]:
        self._check_reads()
        return [
            item
            for item in self.records[kind].values()
            if item.client_id is None
            or (isinstance(item, NoteRecord | RecordingRecord) and item.session_id is None)
        ]

    def get_records(self, kind: RecordKind, ids: Iterable[str]) -> list[OrphanRecord]:
        self._check_reads()
        wanted = set(ids)
        return [item for item in self.records[kind].values() if item.id in wanted]

    def get_sessions(self, *, client_id: str | None = None) -> list[SessionOccurrence]:
        self._check_reads()
        return [
            item
            for item in self.sessions.values()
            if client_id is None or item.client_id == client_id
        ]

    def update_field(
        self,
        kind: RecordKind,
        record_id: str,
        field: str,
        value: object,
        *,
        only_if_null: bool = True,
    ) -> None:
        if (record_id, field) in self.fail_on:
            raise StoreError("store unavailable", record_id=record_id)
        current = self.records[kind].get(record_id)
        if current is None:
            raise StoreError(f"{kind} {record_id} not found", record_id=record_id)
        stored = getattr(current, field)
        if only_if_null and stored is not None:
            if stored == value:
                return
            raise ConflictError(f"{kind} {record_id} already has {field}={stored!r}")
        updated = replace(current, **{field: value})
        self.records[kind][record_id] = updated
        self.writes.append((kind, record_id, field, value))
        if kind is RecordKind.SESSION and field == "client_id" and record_id in self.sessions:
            self.sessions[record_id] = replace(self.sessions[record_id], client_id=str(value))

    def upsert(self, kind: RecordKind, records: Sequence[SessionOccurrence]) -> int:
        if self.fail_upsert:
            raise StoreError("upsert rejected")
        for item in records:
            self.sessions[item.id] = item
            self.records[RecordKind.SESSION][item.id] = SessionRecord(
                id=item.id,
                client_name_hint=item.client_name or "",
                timestamp=item.timestamp,
                client_id=item.client_id,
            )
            self.upserted.append(item)
        return len(records)

    # FeedSource ------------------------------------------------------------

    def list_notes(
        self, *, owner_id: str | None = None, client_id: str | None = None
    ) -> list[NoteRow]:
        _ = owner_id
        return [item for item in self.notes if client_id is None or item.client_id == client_id]

    def list_recordings(
        self, *, owner_id: str | None = None, client_id: str | None = None
    ) -> list[RecordingRow]:
        _ = owner_id
        return [
            item for item in self.recordings if client_id is None or item.client_id == client_id
        ]

    def list_sessions(
        self, *, owner_id: str | None = None, client_id: str | None = None
    ) -> list[SessionOccurrence]:
        return [
            item
            for item in self.sessions.values()
            if (owner_id is None or item.owner_id == owner_id)
            and (client_id is None or item.client_id == client_id)
        ]

    def _check_reads(self) -> None:
        if self.fail_reads:
            raise StoreError("store offline")


@dataclass
class BatchingRecordStore(FakeRecordStore):
    """Fake that also implements ``BatchRecordStore`` and records each flush."""

    batches: list[list[str]] = field(default_factory=list[list[str]])

    def update_fields(
        self,
        kind: RecordKind,
        writes: Sequence[tuple[str, str, object, bool]],
    ) -> list[Exception | None]:
        self.batches.append([record_id for record_id, *_ in writes])
        results: list[Exception | None] = []
        for record_id, field_name, value, only_if_null in writes:
            try:
                self.update_field(kind, record_id, field_name, value, only_if_null=only_if_null)
            except StoreError as exc:
                results.append(exc)
            else:
                results.append(None)
        return results


def note(note_id: str, hint: str = "", **kwargs: object) -> NoteRecord:
    return NoteRecord(id=note_id, client_name_hint=hint, **kwargs)  # type: ignore[arg-type]


def recording(recording_id: str, hint: str = "", **kwargs: object) -> RecordingRecord:
    return RecordingRecord(  # type: ignore[arg-type]
        id=recording_id, client_name_hint=hint, **kwargs
    )


def session_record(session_id: str, hint: str = "", **kwargs: object) -> SessionRecord:
    return SessionRecord(id=session_id, client_name_hint=hint, **kwargs)  # type: ignore[arg-type]
