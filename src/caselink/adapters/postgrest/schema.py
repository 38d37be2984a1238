"""Row schemas returned by the hosted PostgREST endpoint."""

from __future__ import annotations

import json

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HostedRow(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("id", "owner_id", "client_id", "session_id", mode="before", check_fields=False)
    @classmethod
    def _coerce_ids(cls, value: object) -> object:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class ClientRow(HostedRow):
    id: str
    owner_id: str | None = None
    name: str = ""
    first_name: str | None = None
    last_name: str | None = None
    aliases: list[str] = Field(default_factory=list[str])
    archived: bool | None = False

    @field_validator("aliases", mode="before")
    @classmethod
    def _aliases(cls, value: object) -> object:
        if value is None:
            return []
        return value


class SessionRow(HostedRow):
    id: str
    owner_id: str | None = None
    client_id: str | None = None
    client_name: str | None = None
    date: str | None = None
    type: str | None = None
    notes: str | None = None
    duration: int | None = None


class SessionNoteRow(HostedRow):
    id: str
    owner_id: str | None = None
    client_id: str | None = None
    session_id: str | None = None
    client_name: str | None = None
    content: str | None = None
    session_date: str | None = None
    created_at: str | None = None


class RecordingRowModel(HostedRow):
    id: str
    owner_id: str | None = None
    client_id: str | None = None
    session_id: str | None = None
    client_name: str | None = None
    title: str | None = None
    transcript: str | None = None
    audio_url: str | None = None
    created_at: str | None = None

    @field_validator("transcript", mode="before")
    @classmethod
    def _transcript_as_text(cls, value: object) -> object:
        # jsonb transcript columns come back already parsed.
        if isinstance(value, list | dict):
            return json.dumps(value, ensure_ascii=False)
        return value
