"""
DateTime utilities for case scheduling.

All timestamps handled by the core are timezone-aware UTC. Naive datetimes
coming from callers are assumed to already be in UTC.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

UTC = ZoneInfo("UTC")


def get_current_utc() -> datetime:
    """Get the current UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def hours_from(start: datetime, hours: float) -> datetime:
    """Return the datetime ``hours`` after ``start``."""
    return start + timedelta(hours=hours)


def days_from(start: datetime, days: float) -> datetime:
    """Return the datetime ``days`` after ``start``."""
    return start + timedelta(days=days)


def parse_time_of_day(value: str) -> time:
    """Parse an ``HH:MM`` string into a time."""
    hours, minutes = map(int, value.split(":"))
    return time(hour=hours, minute=minutes)


def time_to_minutes(value: str) -> int:
    """Convert an ``HH:MM`` string to minutes after midnight."""
    parsed = parse_time_of_day(value)
    return parsed.hour * 60 + parsed.minute


def date_in_range(day: date, start: date, end: date) -> bool:
    """Check if ``day`` falls within the inclusive range ``[start, end]``."""
    return start <= day <= end


def elapsed_days(since: Optional[datetime], now: datetime) -> float:
    """Return the number of days between ``since`` and ``now`` (0 if unknown)."""
    if since is None:
        return 0.0
    return (ensure_utc(now) - ensure_utc(since)).total_seconds() / 86400.0
