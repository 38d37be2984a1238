"""Display-ready feed types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from caselink.domain.model.enums import RecordKind


@dataclass(frozen=True, slots=True, kw_only=True)
class FeedEntry:
    """One entry of the unified notes/recordings/sessions timeline.

    ``id`` is source-prefixed (``recording-…``, ``session-…``) except for notes,
    which keep their own id.
    """

    id: str
    client_id: str | None
    client_name: str
    occurred_at: datetime | None
    content: str
    source_kind: RecordKind
    source_id: str
    session_id: str | None = None
