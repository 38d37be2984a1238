"""Temporal linker: pick the session occurrence an event belongs to."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from caselink.domain.timestamps import calendar_day, ensure_utc

from .contracts import Reason

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from caselink.domain.model import SessionOccurrence

DEFAULT_WINDOW_DAYS = 3
SECONDS_PER_DAY = 86_400


@dataclass(frozen=True, slots=True)
class SessionLink:
    session_id: str | None
    same_day: bool = False
    delta_seconds: float | None = None
    reason: Reason | None = None


def link_session_detail(
    client_id: str,
    event_timestamp: datetime,
    candidate_sessions: Iterable[SessionOccurrence],
    *,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> SessionLink:
    """Same calendar day first, then the closest session within ``window_days``.

    The window is symmetric and measured in 24h spans around the event. Ties on
    time delta go to the smallest session id.
    """

    event = ensure_utc(event_timestamp)
    event_day = calendar_day(event)
    window_seconds = window_days * SECONDS_PER_DAY
    same_day: list[tuple[float, str]] = []
    in_window: list[tuple[float, str]] = []

    for session in candidate_sessions:
        if session.client_id != client_id or session.timestamp is None:
            continue
        delta = abs((ensure_utc(session.timestamp) - event).total_seconds())
        if calendar_day(session.timestamp) == event_day:
            same_day.append((delta, session.id))
        elif delta <= window_seconds:
            in_window.append((delta, session.id))

    for pool, is_same_day in ((same_day, True), (in_window, False)):
        if pool:
            delta, session_id = min(pool)
            return SessionLink(session_id=session_id, same_day=is_same_day, delta_seconds=delta)
    return SessionLink(session_id=None, reason=Reason.NO_SESSION_IN_WINDOW)


def link_session(
    client_id: str,
    event_timestamp: datetime,
    candidate_sessions: Iterable[SessionOccurrence],
    *,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> str | None:
    """Session id for the event or ``None`` when nothing is close enough."""

    return link_session_detail(
        client_id, event_timestamp, candidate_sessions, window_days=window_days
    ).session_id
