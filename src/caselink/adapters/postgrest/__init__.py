"""Hosted PostgREST adapter package for caselink."""

from __future__ import annotations

from .client import PostgrestAPIError, PostgrestClient
from .store import PostgrestRecordStore

__all__ = [
    "PostgrestAPIError",
    "PostgrestClient",
    "PostgrestRecordStore",
]
