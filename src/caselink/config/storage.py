"""Data storage configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Literal

from .errors import ConfigurationError

APP_DIR_NAME: Final[str] = "caselink"
DEFAULT_DB_FILENAME: Final[str] = "caselink.db"
BACKUP_DIR_NAME: Final[str] = "backups"

type StoreBackend = Literal["sqlalchemy", "postgrest"]


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME
    backup_dir_override: Path | None = None

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def ensure_data_dir(self) -> Path:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def database_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.database_filename

    def backup_dir(self) -> Path:
        if self.backup_dir_override is not None:
            return self.backup_dir_override.expanduser().resolve()
        return self.resolve_data_dir() / BACKUP_DIR_NAME

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("CASELINK_DATA_DIR")
    backup_dir = os.getenv("CASELINK_BACKUP_DIR")
    data_dir = Path(env_dir) if env_dir else _default_data_dir()
    return StorageConfig(
        data_dir=data_dir,
        backup_dir_override=Path(backup_dir) if backup_dir else None,
    )


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    env_uri = os.getenv("DATABASE_URI")
    if env_uri:
        return DatabaseConfig(uri=env_uri)
    storage_config = storage or get_storage_config()
    return DatabaseConfig(uri=storage_config.database_uri())


def get_store_backend() -> StoreBackend:
    raw = (os.getenv("CASELINK_STORE_BACKEND") or "sqlalchemy").strip().lower()
    if raw == "postgrest":
        return "postgrest"
    if raw == "sqlalchemy":
        return "sqlalchemy"
    raise ConfigurationError(f"Unsupported CASELINK_STORE_BACKEND: {raw}")
