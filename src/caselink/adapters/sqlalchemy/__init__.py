"""SQLAlchemy adapter package for caselink."""

from __future__ import annotations

from .mappings import (
    TABLE_BY_KIND,
    clients_table,
    create_all_tables,
    metadata,
    recordings_table,
    session_notes_table,
    sessions_table,
)
from .store import SqlAlchemyRecordStore
from .unit_of_work import StartupError, is_started, shutdown, startup

__all__ = [
    "TABLE_BY_KIND",
    "SqlAlchemyRecordStore",
    "StartupError",
    "clients_table",
    "create_all_tables",
    "is_started",
    "metadata",
    "recordings_table",
    "session_notes_table",
    "sessions_table",
    "shutdown",
    "startup",
]
