"""UTC datetime and calendar-day utilities.

Meter readings are recorded per calendar day; purchases and receipts carry
full timestamps. All comparisons between the two go through the helpers
below so that day arithmetic is done in one place.
"""

import math
from datetime import UTC, date, datetime, time, timedelta

_SECONDS_PER_DAY = 24 * 60 * 60


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def day_start(day: date) -> datetime:
    """Midnight UTC at the start of ``day``."""
    return datetime.combine(day, time.min, tzinfo=UTC)


def next_day_start(day: date) -> datetime:
    return day_start(day + timedelta(days=1))


def calendar_day(value: datetime | date) -> date:
    """UTC calendar day of a timestamp (dates pass through unchanged)."""
    if isinstance(value, datetime):
        return as_utc(value).date()
    return value


def calendar_days_apart(a: datetime | date, b: datetime | date) -> int:
    """Absolute number of calendar days between two points (same day = 0)."""
    return abs((calendar_day(a) - calendar_day(b)).days)


def days_between_ceil(earlier: datetime | date, later: datetime | date) -> int:
    """Elapsed days rounded up, as used for daily consumption rates."""
    if not isinstance(earlier, datetime):
        earlier = day_start(earlier)
    if not isinstance(later, datetime):
        later = day_start(later)
    seconds = (as_utc(later) - as_utc(earlier)).total_seconds()
    return math.ceil(seconds / _SECONDS_PER_DAY)


def month_key(value: datetime | date) -> str:
    """``YYYY-MM`` key of the UTC calendar month."""
    day = calendar_day(value)
    return f"{day.year:04d}-{day.month:02d}"
