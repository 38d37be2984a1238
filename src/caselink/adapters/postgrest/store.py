"""Record store over a hosted PostgREST endpoint.

Sync methods wrap async requests with ``asyncio.run``. ``update_fields`` flushes
a group of single-field writes concurrently, bounded by ``batch_workers``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from caselink.domain.errors import ConflictError, StoreError
from caselink.domain.model import RecordKind

from .client import PostgrestClient, in_filter
from .schema import ClientRow, RecordingRowModel, SessionNoteRow, SessionRow
from .translator import (
    session_to_row,
    translate_client,
    translate_note,
    translate_note_orphan,
    translate_recording,
    translate_recording_orphan,
    translate_session,
    translate_session_orphan,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence

    from pydantic import BaseModel

    from caselink.adapters.http_resilience import ResilientClient
    from caselink.config.hosted_store import HostedStoreConfig
    from caselink.domain.model import (
        ClientIdentity,
        NoteRow,
        OrphanRecord,
        RecordingRow,
        SessionOccurrence,
    )

    from .client import ClientFactory, Row

log = logging.getLogger(__name__)

TABLE_BY_KIND: dict[RecordKind, str] = {
    RecordKind.SESSION: "sessions",
    RecordKind.NOTE: "session_notes",
    RecordKind.RECORDING: "recordings",
}
CLIENTS_TABLE = "clients"

WRITABLE_FIELDS: dict[RecordKind, frozenset[str]] = {
    RecordKind.SESSION: frozenset({"client_id"}),
    RecordKind.NOTE: frozenset({"client_id", "session_id"}),
    RecordKind.RECORDING: frozenset({"client_id", "session_id", "transcript"}),
}

_ORPHAN_FILTERS: dict[RecordKind, dict[str, str]] = {
    RecordKind.SESSION: {"client_id": "is.null"},
    RecordKind.NOTE: {"or": "(client_id.is.null,session_id.is.null)"},
    RecordKind.RECORDING: {"or": "(client_id.is.null,session_id.is.null)"},
}


def _parse_rows[TModel: BaseModel](model: type[TModel], rows: Iterable[Row]) -> list[TModel]:
    parsed: list[TModel] = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as exc:
            log.warning("Skipping malformed %s row %r: %s", model.__name__, row.get("id"), exc)
    return parsed


class PostgrestRecordStore:
    """``RecordStore``, ``BatchRecordStore`` and ``FeedSource`` over PostgREST."""

    def __init__(
        self,
        *,
        config: HostedStoreConfig,
        client_factory: ClientFactory | None = None,
        batch_workers: int = 4,
    ) -> None:
        self._api = PostgrestClient(config=config, client_factory=client_factory)
        self._batch_workers = max(1, batch_workers)

    # Reads -----------------------------------------------------------------

    def get_clients(self, *, owner_id: str | None = None) -> list[ClientIdentity]:
        params = {"or": "(archived.is.null,archived.is.false)", "order": "id.asc"}
        if owner_id is not None:
            params["owner_id"] = f"eq.{owner_id}"
        rows = self._run(lambda client: self._api.select(client, CLIENTS_TABLE, params))
        return [translate_client(row) for row in _parse_rows(ClientRow, rows)]

    def get_orphans(self, kind: RecordKind) -> list[OrphanRecord]:
        params = {**_ORPHAN_FILTERS[kind], "order": "id.asc"}
        return self._orphans(kind, params)

    def get_records(self, kind: RecordKind, ids: Iterable[str]) -> list[OrphanRecord]:
        wanted = list(dict.fromkeys(ids))
        if not wanted:
            return []
        return self._orphans(kind, {"id": in_filter(wanted), "order": "id.asc"})

    def get_sessions(self, *, client_id: str | None = None) -> list[SessionOccurrence]:
        return self.list_sessions(client_id=client_id)

    def list_sessions(
        self, *, owner_id: str | None = None, client_id: str | None = None
    ) -> list[SessionOccurrence]:
        params = _scope_params(owner_id, client_id, order="date.asc,id.asc")
        rows = self._run(lambda client: self._api.select(client, "sessions", params))
        return [translate_session(row) for row in _parse_rows(SessionRow, rows)]

    def list_notes(
        self, *, owner_id: str | None = None, client_id: str | None = None
    ) -> list[NoteRow]:
        params = _scope_params(owner_id, client_id, order="id.asc")
        rows = self._run(lambda client: self._api.select(client, "session_notes", params))
        return [translate_note(row) for row in _parse_rows(SessionNoteRow, rows)]

    def list_recordings(
        self, *, owner_id: str | None = None, client_id: str | None = None
    ) -> list[RecordingRow]:
        params = _scope_params(owner_id, client_id, order="id.asc")
        rows = self._run(lambda client: self._api.select(client, "recordings", params))
        return [translate_recording(row) for row in _parse_rows(RecordingRowModel, rows)]

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
        async def _write(client: ResilientClient) -> None:
            await self._update_field_async(client, kind, record_id, field, value, only_if_null)

        self._run(_write)

    def update_fields(
        self,
        kind: RecordKind,
        writes: Sequence[tuple[str, str, object, bool]],
    ) -> list[Exception | None]:
        async def _write_all(client: ResilientClient) -> list[Exception | None]:
            semaphore = asyncio.Semaphore(self._batch_workers)

            async def _one(write: tuple[str, str, object, bool]) -> Exception | None:
                record_id, field, value, only_if_null = write
                async with semaphore:
                    try:
                        await self._update_field_async(
                            client, kind, record_id, field, value, only_if_null
                        )
                    except StoreError as exc:
                        return exc
                return None

            return list(await asyncio.gather(*(_one(write) for write in writes)))

        return self._run(_write_all)

    def upsert(self, kind: RecordKind, records: Sequence[SessionOccurrence]) -> int:
        if kind is not RecordKind.SESSION:
            raise StoreError(f"upsert is not supported for {kind}")
        if not records:
            return 0
        rows = [session_to_row(record) for record in records]
        self._run(lambda client: self._api.upsert(client, "sessions", rows))
        return len(rows)

    # Helpers ---------------------------------------------------------------

    async def _update_field_async(
        self,
        client: ResilientClient,
        kind: RecordKind,
        record_id: str,
        field: str,
        value: object,
        only_if_null: bool,  # noqa: FBT001
    ) -> None:
        if field not in WRITABLE_FIELDS[kind]:
            raise StoreError(f"field {field!r} is not writable on {kind}", record_id=record_id)
        table = TABLE_BY_KIND[kind]
        params = {"id": f"eq.{record_id}"}
        if only_if_null:
            params[field] = "is.null"
        updated = await self._api.patch(client, table, params, {field: value})
        if updated:
            return
        current = await self._api.select(
            client, table, {"id": f"eq.{record_id}", "select": f"id,{field}"}
        )
        if not current:
            raise StoreError(f"{kind} {record_id} not found", record_id=record_id)
        stored = current[0].get(field)
        if stored == value or (stored is not None and str(stored) == str(value)):
            log.debug("%s %s already has %s=%s", kind, record_id, field, value)
            return
        raise ConflictError(
            f"{kind} {record_id} already has {field}={stored!r}",
            record_id=record_id,
        )

    def _orphans(self, kind: RecordKind, params: dict[str, str]) -> list[OrphanRecord]:
        table = TABLE_BY_KIND[kind]

        async def _load(client: ResilientClient) -> tuple[list[Row], list[Row]]:
            rows = await self._api.select(client, table, params)
            client_ids = sorted({str(row["client_id"]) for row in rows if row.get("client_id")})
            names: list[Row] = []
            if client_ids:
                names = await self._api.select(
                    client, CLIENTS_TABLE, {"id": in_filter(client_ids), "select": "id,name"}
                )
            return rows, names

        rows, name_rows = self._run(_load)
        names: Mapping[str, str] = {
            str(row["id"]): str(row["name"]) for row in name_rows if row.get("name")
        }
        if kind is RecordKind.SESSION:
            return [translate_session_orphan(row, names) for row in _parse_rows(SessionRow, rows)]
        if kind is RecordKind.NOTE:
            return [translate_note_orphan(row, names) for row in _parse_rows(SessionNoteRow, rows)]
        return [
            translate_recording_orphan(row, names)
            for row in _parse_rows(RecordingRowModel, rows)
        ]

    def _run[T](self, operation: Callable[[ResilientClient], Awaitable[T]]) -> T:
        async def _with_client() -> T:
            async with self._api.open() as client:
                return await operation(client)

        return asyncio.run(_with_client())


def _scope_params(owner_id: str | None, client_id: str | None, *, order: str) -> dict[str, str]:
    params = {"order": order}
    if owner_id is not None:
        params["owner_id"] = f"eq.{owner_id}"
    if client_id is not None:
        params["client_id"] = f"eq.{client_id}"
    return params
