"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class RecordKind(StrEnum):
    """Entity kinds handled by reconciliation and the unified feed."""

    SESSION = "session"
    NOTE = "note"
    RECORDING = "recording"


class RecordSource(StrEnum):
    """Where an orphan record was read from."""

    LIVE = "live"
    BACKUP = "backup"


# Reconciliation order: sessions first so notes and recordings can link to them.
RECONCILE_ORDER: tuple[RecordKind, ...] = (
    RecordKind.SESSION,
    RecordKind.NOTE,
    RecordKind.RECORDING,
)

# Feed precedence, highest first.
FEED_PRECEDENCE: tuple[RecordKind, ...] = (
    RecordKind.NOTE,
    RecordKind.RECORDING,
    RecordKind.SESSION,
)
