from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import insert, select

from caselink.adapters.sqlalchemy import (
    SqlAlchemyRecordStore,
    clients_table,
    recordings_table,
    session_notes_table,
    sessions_table,
)
from caselink.domain.errors import ConflictError, StoreError
from caselink.domain.model import NoteRecord, RecordingRecord, RecordKind, SessionOccurrence

if TYPE_CHECKING:
    from sqlalchemy import Table
    from sqlalchemy.engine import Connection, Engine

DAY = datetime(2025, 1, 10, 9, tzinfo=UTC)


def _insert(conn: Connection, table: Table, rows: list[dict[str, object]]) -> None:
    for row in rows:
        conn.execute(insert(table).values(**row))


@pytest.fixture
def seeded(sqlite_engine: Engine, sqlite_store: SqlAlchemyRecordStore) -> SqlAlchemyRecordStore:
    with sqlite_engine.begin() as conn:
        _insert(
            conn,
            clients_table,
            [
                {"id": "c1", "owner_id": "o1", "name": "Lilli D Schillaci", "aliases": ["Lil"]},
                {"id": "c2", "owner_id": "o1", "name": "Anna Silva", "first_name": "Ana"},
                {"id": "c3", "owner_id": "o1", "name": "Old Client", "archived": True},
            ],
        )
        _insert(
            conn,
            sessions_table,
            [
                {"id": "s1", "owner_id": "o1", "client_id": "c1", "date": DAY, "notes": "n"},
                {"id": "s2", "owner_id": "o1", "client_name": "Anna Silva", "date": DAY},
            ],
        )
        _insert(
            conn,
            session_notes_table,
            [
                {"id": "n1", "owner_id": "o1", "client_name": "Lilly", "session_date": DAY},
                {
                    "id": "n2",
                    "owner_id": "o1",
                    "client_id": "c1",
                    "session_id": "s1",
                    "content": "linked",
                    "created_at": DAY,
                },
                {"id": "n3", "owner_id": "o1", "client_id": "c1", "content": "no session"},
            ],
        )
        _insert(
            conn,
            recordings_table,
            [{"id": "r1", "owner_id": "o1", "title": "Intake", "transcript": "words"}],
        )
    return sqlite_store


def test_get_clients_excludes_archived_rows(seeded: SqlAlchemyRecordStore) -> None:
    clients = seeded.get_clients()

    assert [item.id for item in clients] == ["c1", "c2"]
    assert clients[0].name_variants == frozenset({"Lil"})
    assert clients[1].first_name == "Ana"
    assert seeded.get_clients(owner_id="other") == []


def test_get_orphans_filters_null_associations(seeded: SqlAlchemyRecordStore) -> None:
    sessions = seeded.get_orphans(RecordKind.SESSION)
    notes = seeded.get_orphans(RecordKind.NOTE)
    recordings = seeded.get_orphans(RecordKind.RECORDING)

    assert [item.id for item in sessions] == ["s2"]
    assert sessions[0].client_name_hint == "Anna Silva"
    assert [item.id for item in notes] == ["n1", "n3"]
    assert isinstance(notes[0], NoteRecord)
    assert notes[0].client_name_hint == "Lilly"
    assert notes[0].timestamp == DAY
    assert notes[1].client_name_hint == "Lilli D Schillaci"
    assert isinstance(recordings[0], RecordingRecord)
    assert recordings[0].transcript == "words"


def test_get_records_by_id(seeded: SqlAlchemyRecordStore) -> None:
    records = seeded.get_records(RecordKind.NOTE, ["n2", "missing", "n2"])

    assert [item.id for item in records] == ["n2"]
    assert seeded.get_records(RecordKind.NOTE, []) == []


def test_update_field_fills_null_only(
    seeded: SqlAlchemyRecordStore, sqlite_engine: Engine
) -> None:
    seeded.update_field(RecordKind.NOTE, "n1", "client_id", "c1")
    seeded.update_field(RecordKind.NOTE, "n1", "client_id", "c1")

    with pytest.raises(ConflictError):
        seeded.update_field(RecordKind.NOTE, "n1", "client_id", "c2")

    with sqlite_engine.connect() as conn:
        stored = conn.execute(
            select(session_notes_table.c.client_id).where(session_notes_table.c.id == "n1")
        ).scalar_one()
    assert stored == "c1"


def test_update_field_forced_and_invalid_writes(seeded: SqlAlchemyRecordStore) -> None:
    seeded.update_field(RecordKind.NOTE, "n2", "client_id", "c2", only_if_null=False)

    assert seeded.get_records(RecordKind.NOTE, ["n2"])[0].client_id == "c2"
    with pytest.raises(StoreError, match="not writable"):
        seeded.update_field(RecordKind.NOTE, "n2", "content", "x")
    with pytest.raises(StoreError, match="not found"):
        seeded.update_field(RecordKind.NOTE, "missing", "client_id", "c1")


def test_upsert_inserts_and_refreshes_sessions(seeded: SqlAlchemyRecordStore) -> None:
    written = seeded.upsert(
        RecordKind.SESSION,
        [
            SessionOccurrence(id="s3", client_id="c2", timestamp=DAY, owner_id="o1"),
            SessionOccurrence(id="s2", client_id="c2", timestamp=DAY, owner_id="o1"),
        ],
    )

    sessions = {item.id: item for item in seeded.list_sessions(owner_id="o1")}
    assert written == 2
    assert sessions["s3"].client_id == "c2"
    assert sessions["s2"].client_id == "c2"
    with pytest.raises(StoreError):
        seeded.upsert(RecordKind.NOTE, [])


def test_feed_reads_are_scoped(seeded: SqlAlchemyRecordStore) -> None:
    notes = seeded.list_notes(owner_id="o1", client_id="c1")
    recordings = seeded.list_recordings(owner_id="o1")
    sessions = seeded.get_sessions(client_id="c1")

    assert [item.id for item in notes] == ["n2", "n3"]
    assert notes[0].occurred_at == DAY
    assert [item.id for item in recordings] == ["r1"]
    assert [item.id for item in sessions] == ["s1"]
