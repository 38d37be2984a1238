"""Port for point-in-time backup snapshots."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from caselink.domain.model import OrphanRecord, RecordKind, SessionOccurrence


@runtime_checkable
class BackupSource(Protocol):
    """Reads a previously exported snapshot of one entity kind."""

    def read_snapshot(self, kind: RecordKind) -> list[OrphanRecord]: ...

    def read_sessions(self) -> list[SessionOccurrence]:
        """Appointment snapshot rows as full session occurrences."""
        ...
