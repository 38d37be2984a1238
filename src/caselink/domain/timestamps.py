"""Tolerant timestamp parsing for store rows and backup snapshots."""

from __future__ import annotations

from datetime import UTC, date, datetime, time


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_timestamp(value: object) -> datetime | None:
    """Parse ISO-8601 strings (``Z`` suffix allowed), dates and datetimes.

    Anything unparseable yields ``None``; callers treat that as "no timestamp".
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=UTC)
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    if not normalized:
        return None
    if normalized.endswith(("Z", "z")):
        normalized = normalized[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    return ensure_utc(parsed)


def combine_date_time(date_value: str | None, time_value: str | None) -> datetime | None:
    """Combine a snapshot ``date`` with an optional separate ``time`` field.

    ``time`` is only applied when ``date`` carries no time component of its own.
    Accepts ``HH:MM`` and ``HH:MM:SS``.
    """

    if not date_value:
        return None
    stripped = date_value.strip()
    if time_value and "T" not in stripped and " " not in stripped:
        clock = time_value.strip()
        if len(clock) == 5:  # noqa: PLR2004
            clock = f"{clock}:00"
        combined = parse_timestamp(f"{stripped}T{clock}")
        if combined is not None:
            return combined
    return parse_timestamp(stripped)


def calendar_day(value: datetime) -> date:
    """UTC calendar day of ``value``."""

    return ensure_utc(value).date()
