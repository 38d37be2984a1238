"""Backup snapshot adapter package for caselink."""

from __future__ import annotations

from .schema import AppointmentSnapshot, RecordingSnapshot, SessionNoteSnapshot
from .source import SNAPSHOT_FILES, JsonBackupSource

__all__ = [
    "SNAPSHOT_FILES",
    "AppointmentSnapshot",
    "JsonBackupSource",
    "RecordingSnapshot",
    "SessionNoteSnapshot",
]
