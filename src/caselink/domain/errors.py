"""Error types raised across the reconciliation and feed subsystem."""

from __future__ import annotations


class CaselinkError(RuntimeError):
    """Base class for domain-level failures."""


class StoreError(CaselinkError):
    """Raised by record store adapters when a read or write fails."""

    def __init__(self, message: str, *, record_id: str | None = None) -> None:
        super().__init__(message)
        self.record_id = record_id


class ConflictError(StoreError):
    """Raised when a conditional write finds the field already set to another value."""


class PreconditionError(CaselinkError):
    """Raised when a run cannot start because its inputs could not be loaded."""


class BackupFormatError(CaselinkError):
    """Raised when a backup snapshot file is not a JSON list of rows."""
