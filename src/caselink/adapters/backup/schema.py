"""Pydantic models describing exported backup snapshot rows.

Exports were written by several app generations, so every field accepts the
camelCase spelling as well as the snake_case column name.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# Epoch timestamps above this are milliseconds.
_EPOCH_MS_THRESHOLD = 10**11


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _id_to_str(value: object) -> object:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(int(value))
    return _blank_to_none(value)


def _epoch_to_iso(value: object) -> object:
    if isinstance(value, int | float) and not isinstance(value, bool):
        seconds = value / 1000 if value > _EPOCH_MS_THRESHOLD else value
        return datetime.fromtimestamp(seconds, tz=UTC).isoformat()
    return _blank_to_none(value)


class SnapshotBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class AppointmentSnapshot(SnapshotBaseModel):
    id: str
    client_name: str | None = Field(
        default=None, validation_alias=AliasChoices("clientName", "client_name")
    )
    client_id: str | None = Field(
        default=None, validation_alias=AliasChoices("clientId", "client_id")
    )
    owner_id: str | None = Field(
        default=None, validation_alias=AliasChoices("ownerId", "userId", "owner_id", "user_id")
    )
    date: str | None = None
    time: str | None = None
    type: str | None = None
    notes: str | None = None
    duration: int | None = None

    _normalize_ids = field_validator("id", "client_id", "owner_id", mode="before")(_id_to_str)
    _normalize_text = field_validator("date", "time", mode="before")(_blank_to_none)


class SessionNoteSnapshot(SnapshotBaseModel):
    id: str
    client_name: str | None = Field(
        default=None, validation_alias=AliasChoices("clientName", "client_name")
    )
    client_id: str | None = Field(
        default=None, validation_alias=AliasChoices("clientId", "client_id")
    )
    session_id: str | None = Field(
        default=None, validation_alias=AliasChoices("sessionId", "session_id")
    )
    content: str = ""
    session_date: str | None = Field(
        default=None, validation_alias=AliasChoices("sessionDate", "session_date")
    )
    created_at: str | None = Field(
        default=None,
        validation_alias=AliasChoices("createdAt", "createdDate", "created_at"),
    )

    _normalize_ids = field_validator("id", "client_id", "session_id", mode="before")(_id_to_str)
    _normalize_dates = field_validator("session_date", "created_at", mode="before")(_epoch_to_iso)

    @field_validator("content", mode="before")
    @classmethod
    def _content(cls, value: object) -> object:
        return "" if value is None else value


class RecordingSnapshot(SnapshotBaseModel):
    id: str
    client_name: str | None = Field(
        default=None, validation_alias=AliasChoices("clientName", "client_name")
    )
    client_id: str | None = Field(
        default=None, validation_alias=AliasChoices("clientId", "client_id")
    )
    session_id: str | None = Field(
        default=None, validation_alias=AliasChoices("sessionId", "session_id")
    )
    title: str | None = None
    transcript: str | None = None
    created_at: str | None = Field(
        default=None,
        validation_alias=AliasChoices("createdAt", "savedAt", "date", "created_at"),
    )

    _normalize_ids = field_validator("id", "client_id", "session_id", mode="before")(_id_to_str)
    _normalize_created = field_validator("created_at", mode="before")(_epoch_to_iso)

    @field_validator("transcript", mode="before")
    @classmethod
    def _transcript_as_text(cls, value: object) -> object:
        if isinstance(value, list | dict):
            return json.dumps(value, ensure_ascii=False)
        return value
