"""SQLAlchemy Core tables for the practice record store.

Associations are plain nullable id columns without foreign keys: orphaned
rows are exactly the ones this package repairs.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
)

from caselink.domain.model import RecordKind

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class StringListType(TypeDecorator[list[str]]):
    """JSON-encoded list of strings (client name aliases)."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[str] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(sorted(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[str]:
        _ = dialect
        if not value:
            return []
        try:
            loaded = json.loads(value)
        except ValueError:
            log.warning("Ignoring malformed alias list %r", value)
            return []
        if not isinstance(loaded, list):
            return []
        items = cast(list[Any], loaded)
        return [item for item in items if isinstance(item, str)]


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "pk": "pk_%(table_name)s",
    }
)

clients_table = Table(
    "clients",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("owner_id", String(64), index=True),
    Column("name", String(255), nullable=False),
    Column("first_name", String(255)),
    Column("last_name", String(255)),
    Column("aliases", StringListType(), nullable=False, default=list),
    Column("archived", Boolean, nullable=False, default=False),
)

sessions_table = Table(
    "sessions",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("owner_id", String(64), index=True),
    Column("client_id", String(64), index=True),
    Column("client_name", String(255)),
    Column("date", UTCDateTime()),
    Column("type", String(64)),
    Column("notes", Text, nullable=False, default=""),
    Column("duration", Integer),
)

session_notes_table = Table(
    "session_notes",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("owner_id", String(64), index=True),
    Column("client_id", String(64), index=True),
    Column("session_id", String(64), index=True),
    Column("client_name", String(255)),
    Column("content", Text, nullable=False, default=""),
    Column("session_date", UTCDateTime()),
    Column("created_at", UTCDateTime()),
)

recordings_table = Table(
    "recordings",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("owner_id", String(64), index=True),
    Column("client_id", String(64), index=True),
    Column("session_id", String(64), index=True),
    Column("client_name", String(255)),
    Column("title", String(255)),
    Column("transcript", Text),
    Column("audio_url", String(1024)),
    Column("created_at", UTCDateTime()),
)

TABLE_BY_KIND: dict[RecordKind, Table] = {
    RecordKind.SESSION: sessions_table,
    RecordKind.NOTE: session_notes_table,
    RecordKind.RECORDING: recordings_table,
}

# Fields the reconciliation and cleanup passes are allowed to write.
WRITABLE_FIELDS: dict[RecordKind, frozenset[str]] = {
    RecordKind.SESSION: frozenset({"client_id"}),
    RecordKind.NOTE: frozenset({"client_id", "session_id"}),
    RecordKind.RECORDING: frozenset({"client_id", "session_id", "transcript"}),
}


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the record store."""

    log.info("Creating all tables")
    metadata.create_all(engine)
