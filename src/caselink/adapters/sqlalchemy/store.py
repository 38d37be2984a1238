"""Record store backed by SQLAlchemy Core.

Every public call runs in its own short transaction. Writes are single-column
``UPDATE`` statements; the fill-only guard is part of the ``WHERE`` clause so
two concurrent passes cannot overwrite each other.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import Select, and_, or_, select, update
from sqlalchemy.exc import SQLAlchemyError

from caselink.domain.errors import ConflictError, StoreError
from caselink.domain.model import (
    ClientIdentity,
    NoteRecord,
    NoteRow,
    RecordingRecord,
    RecordingRow,
    RecordKind,
    SessionOccurrence,
    SessionRecord,
)

from .mappings import (
    TABLE_BY_KIND,
    WRITABLE_FIELDS,
    clients_table,
    recordings_table,
    session_notes_table,
    sessions_table,
)
from .unit_of_work import session_factory as default_session_factory

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy import Row
    from sqlalchemy.orm import Session, sessionmaker

    from caselink.domain.model import OrphanRecord

log = logging.getLogger(__name__)


class SqlAlchemyRecordStore:
    """``RecordStore`` and ``FeedSource`` over the Core tables."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self._session_factory = session_factory or default_session_factory()

    # Reads -----------------------------------------------------------------

    def get_clients(self, *, owner_id: str | None = None) -> list[ClientIdentity]:
        stmt = select(clients_table).where(clients_table.c.archived.is_(False))
        if owner_id is not None:
            stmt = stmt.where(clients_table.c.owner_id == owner_id)
        stmt = stmt.order_by(clients_table.c.id)
        return [_client_from_row(row) for row in self._fetch(stmt)]

    def get_orphans(self, kind: RecordKind) -> list[OrphanRecord]:
        table = TABLE_BY_KIND[kind]
        if kind is RecordKind.SESSION:
            condition = table.c.client_id.is_(None)
        else:
            condition = or_(table.c.client_id.is_(None), table.c.session_id.is_(None))
        stmt = _orphan_select(kind).where(condition).order_by(table.c.id)
        return [_orphan_from_row(kind, row) for row in self._fetch(stmt)]

    def get_records(self, kind: RecordKind, ids: Iterable[str]) -> list[OrphanRecord]:
        wanted = list(dict.fromkeys(ids))
        if not wanted:
            return []
        table = TABLE_BY_KIND[kind]
        stmt = _orphan_select(kind).where(table.c.id.in_(wanted)).order_by(table.c.id)
        return [_orphan_from_row(kind, row) for row in self._fetch(stmt)]

    def get_sessions(self, *, client_id: str | None = None) -> list[SessionOccurrence]:
        return self.list_sessions(client_id=client_id)

    def list_sessions(
        self, *, owner_id: str | None = None, client_id: str | None = None
    ) -> list[SessionOccurrence]:
        stmt = select(sessions_table)
        stmt = _scoped(stmt, sessions_table, owner_id=owner_id, client_id=client_id)
        stmt = stmt.order_by(sessions_table.c.date, sessions_table.c.id)
        return [_session_from_row(row) for row in self._fetch(stmt)]

    def list_notes(
        self, *, owner_id: str | None = None, client_id: str | None = None
    ) -> list[NoteRow]:
        stmt = _scoped(
            select(session_notes_table),
            session_notes_table,
            owner_id=owner_id,
            client_id=client_id,
        ).order_by(session_notes_table.c.id)
        return [
            NoteRow(
                id=row.id,
                client_id=row.client_id,
                session_id=row.session_id,
                content=row.content or "",
                occurred_at=row.session_date or row.created_at,
                client_name=row.client_name,
            )
            for row in self._fetch(stmt)
        ]

    def list_recordings(
        self, *, owner_id: str | None = None, client_id: str | None = None
    ) -> list[RecordingRow]:
        stmt = _scoped(
            select(recordings_table),
            recordings_table,
            owner_id=owner_id,
            client_id=client_id,
        ).order_by(recordings_table.c.id)
        return [
            RecordingRow(
                id=row.id,
                client_id=row.client_id,
                session_id=row.session_id,
                transcript=row.transcript,
                created_at=row.created_at,
                title=row.title,
                client_name=row.client_name,
                audio_url=row.audio_url,
            )
            for row in self._fetch(stmt)
        ]

    # Writes ----------------------------------------------------------------

    def update_field(
        self,
        kind: RecordKind,
        record_id: str,
        field: str,
        value: object,
        *,
        only_if_null: bool = True,
    ) -> None:
        if field not in WRITABLE_FIELDS[kind]:
            raise StoreError(f"field {field!r} is not writable on {kind}", record_id=record_id)
        table = TABLE_BY_KIND[kind]
        column = table.c[field]
        conditions = [table.c.id == record_id]
        if only_if_null:
            conditions.append(column.is_(None))
        stmt = update(table).where(and_(*conditions)).values({field: value})
        try:
            with self._session_factory.begin() as session:
                result = session.execute(stmt)
                if result.rowcount:  # pyright: ignore[reportAttributeAccessIssue]
                    return
                current = session.execute(
                    select(column).where(table.c.id == record_id)
                ).one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(str(exc), record_id=record_id) from exc

        if current is None:
            raise StoreError(f"{kind} {record_id} not found", record_id=record_id)
        if current[0] == value:
            log.debug("%s %s already has %s=%s", kind, record_id, field, value)
            return
        raise ConflictError(
            f"{kind} {record_id} already has {field}={current[0]!r}",
            record_id=record_id,
        )

    def upsert(self, kind: RecordKind, records: Sequence[SessionOccurrence]) -> int:
        """Insert new sessions and refresh existing ones; return rows written."""

        if kind is not RecordKind.SESSION:
            raise StoreError(f"upsert is not supported for {kind}")
        if not records:
            return 0
        ids = [record.id for record in records]
        try:
            with self._session_factory.begin() as session:
                existing = set(
                    session.scalars(
                        select(sessions_table.c.id).where(sessions_table.c.id.in_(ids))
                    )
                )
                for record in records:
                    values = _session_values(record)
                    if record.id in existing:
                        session.execute(
                            update(sessions_table)
                            .where(sessions_table.c.id == record.id)
                            .values(values)
                        )
                    else:
                        session.execute(sessions_table.insert().values(id=record.id, **values))
                        existing.add(record.id)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        return len(records)

    # Helpers ---------------------------------------------------------------

    def _fetch(self, stmt: Select[Any]) -> list[Row[Any]]:
        try:
            with self._session_factory() as session:
                return list(session.execute(stmt).all())
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc


def _scoped(
    stmt: Select[Any],
    table: Any,
    *,
    owner_id: str | None,
    client_id: str | None,
) -> Select[Any]:
    if owner_id is not None:
        stmt = stmt.where(table.c.owner_id == owner_id)
    if client_id is not None:
        stmt = stmt.where(table.c.client_id == client_id)
    return stmt


def _orphan_select(kind: RecordKind) -> Select[Any]:
    """Rows of ``kind`` with the joined client name (when the client id resolves)."""

    table = TABLE_BY_KIND[kind]
    joined_name = clients_table.c.name.label("joined_client_name")
    return select(table, joined_name).select_from(
        table.outerjoin(clients_table, clients_table.c.id == table.c.client_id)
    )


def _name_hint(row: Row[Any]) -> str:
    return row.joined_client_name or row.client_name or ""


def _orphan_from_row(kind: RecordKind, row: Row[Any]) -> OrphanRecord:
    if kind is RecordKind.SESSION:
        return SessionRecord(
            id=row.id,
            client_name_hint=_name_hint(row),
            timestamp=row.date,
            client_id=row.client_id,
        )
    if kind is RecordKind.NOTE:
        return NoteRecord(
            id=row.id,
            client_name_hint=_name_hint(row),
            timestamp=row.session_date or row.created_at,
            client_id=row.client_id,
            session_id=row.session_id,
        )
    return RecordingRecord(
        id=row.id,
        client_name_hint=_name_hint(row),
        timestamp=row.created_at,
        client_id=row.client_id,
        session_id=row.session_id,
        title=row.title,
        transcript=row.transcript,
    )


def _client_from_row(row: Row[Any]) -> ClientIdentity:
    return ClientIdentity(
        id=row.id,
        canonical_name=row.name,
        name_variants=frozenset(row.aliases or ()),
        first_name=row.first_name,
        last_name=row.last_name,
        owner_id=row.owner_id,
    )


def _session_from_row(row: Row[Any]) -> SessionOccurrence:
    return SessionOccurrence(
        id=row.id,
        client_id=row.client_id,
        timestamp=row.date,
        session_type=row.type,
        notes=row.notes or "",
        client_name=row.client_name,
        owner_id=row.owner_id,
    )


def _session_values(record: SessionOccurrence) -> dict[str, object]:
    return {
        "owner_id": record.owner_id,
        "client_id": record.client_id,
        "client_name": record.client_name,
        "date": record.timestamp,
        "type": record.session_type,
        "notes": record.notes,
    }
