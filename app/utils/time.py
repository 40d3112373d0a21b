"""Time utility helpers."""

from __future__ import annotations

from datetime import UTC, date, datetime


def now_utc() -> datetime:
    """Return current timezone-aware UTC datetime."""
    return datetime.now(tz=UTC)


def utc_today() -> date:
    """Return current UTC date."""
    return now_utc().date()


def epoch_millis() -> int:
    """Return the current UNIX time in milliseconds."""
    return int(now_utc().timestamp() * 1000)


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse a Supabase timestamp string into an aware datetime."""
    if not value:
        return None

    if isinstance(value, str):
        normalized = value.replace("Z", "+00:00")
        parsed = datetime.fromisoformat(normalized)
    else:
        parsed = value

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def day_of(value: str | datetime | None) -> date | None:
    """Return the UTC calendar day of a stored timestamp."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return parsed.astimezone(UTC).date()
