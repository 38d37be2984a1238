"""Domain port definitions for adapters."""

from __future__ import annotations

from .backup import BackupSource
from .persistence import BatchRecordStore, FeedSource, PracticeStore, RecordStore

__all__ = [
    "BackupSource",
    "BatchRecordStore",
    "FeedSource",
    "PracticeStore",
    "RecordStore",
]
