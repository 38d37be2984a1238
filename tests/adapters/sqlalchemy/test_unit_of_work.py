from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import inspect

from caselink.adapters.sqlalchemy import SqlAlchemyRecordStore, StartupError
from caselink.adapters.sqlalchemy.unit_of_work import (
    configured_engine,
    is_started,
    shutdown,
    startup,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def test_store_requires_startup() -> None:
    shutdown()

    with pytest.raises(StartupError):
        SqlAlchemyRecordStore()


def test_startup_creates_tables_and_refuses_double_init(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    try:
        assert is_started()
        assert configured_engine() is sqlite_engine
        assert {"clients", "sessions", "session_notes", "recordings"} <= set(
            inspect(sqlite_engine).get_table_names()
        )
        with pytest.raises(StartupError):
            startup(engine=sqlite_engine)
    finally:
        shutdown()

    assert not is_started()


def test_startup_uses_database_uri_override() -> None:
    startup(database_uri="sqlite+pysqlite:///:memory:", force=True)
    try:
        engine = configured_engine()
        assert engine is not None
        assert str(engine.url) == "sqlite+pysqlite:///:memory:"
    finally:
        shutdown()
