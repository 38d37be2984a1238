"""Backup source reading exported JSON snapshot files from a directory."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, cast

from pydantic import BaseModel, ValidationError

from caselink.domain.errors import BackupFormatError
from caselink.domain.model import RecordKind

from .schema import AppointmentSnapshot, RecordingSnapshot, SessionNoteSnapshot
from .translator import (
    appointment_to_session,
    translate_appointment,
    translate_recording,
    translate_session_note,
)

if TYPE_CHECKING:
    from pathlib import Path

    from caselink.domain.model import OrphanRecord, SessionOccurrence

log = logging.getLogger(__name__)

SNAPSHOT_FILES: dict[RecordKind, str] = {
    RecordKind.SESSION: "appointments.json",
    RecordKind.NOTE: "session-notes.json",
    RecordKind.RECORDING: "recordings.json",
}


class JsonBackupSource:
    """``BackupSource`` over ``appointments.json``, ``session-notes.json`` and ``recordings.json``.

    A missing file is an empty snapshot. A file that is not a JSON list raises
    ``BackupFormatError``; individual malformed rows are skipped.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def snapshot_path(self, kind: RecordKind) -> Path:
        return self.directory / SNAPSHOT_FILES[kind]

    def read_snapshot(self, kind: RecordKind) -> list[OrphanRecord]:
        if kind is RecordKind.SESSION:
            return [
                translate_appointment(row)
                for row in self._read_rows(kind, AppointmentSnapshot)
            ]
        if kind is RecordKind.NOTE:
            return [
                translate_session_note(row)
                for row in self._read_rows(kind, SessionNoteSnapshot)
            ]
        return [translate_recording(row) for row in self._read_rows(kind, RecordingSnapshot)]

    def read_sessions(self) -> list[SessionOccurrence]:
        return [
            appointment_to_session(row)
            for row in self._read_rows(RecordKind.SESSION, AppointmentSnapshot)
        ]

    def _read_rows[TModel: BaseModel](self, kind: RecordKind, model: type[TModel]) -> list[TModel]:
        path = self.snapshot_path(kind)
        if not path.exists():
            log.warning("Backup snapshot %s not found; treating it as empty", path)
            return []
        try:
            with path.open(encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, ValueError) as exc:
            raise BackupFormatError(f"{path}: cannot read snapshot ({exc})") from exc
        if not isinstance(payload, list):
            raise BackupFormatError(f"{path}: snapshot must be a JSON list")

        rows: list[TModel] = []
        for position, item in enumerate(cast(list[Any], payload)):
            try:
                rows.append(model.model_validate(item))
            except ValidationError as exc:
                log.warning(
                    "Skipping malformed %s row #%d in %s: %s",
                    kind,
                    position,
                    path.name,
                    exc.error_count(),
                )
        log.info("Read %d %s rows from %s", len(rows), kind, path.name)
        return rows
