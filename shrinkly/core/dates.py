"""
UTC time helpers.

Timestamps are stored as naive UTC datetimes so SQLite and PostgreSQL
compare them identically.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple


def utcnow() -> datetime:
    """Current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def date_range_bounds(
    start_date: Optional[date],
    end_date: Optional[date]
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Convert an inclusive date range into half-open datetime bounds.

    The start bound is midnight of start_date (inclusive); the end bound is
    midnight after end_date (exclusive), so every event on the last day is
    included whatever its sub-second precision.
    """
    start = datetime.combine(start_date, time.min) if start_date else None
    end = datetime.combine(end_date + timedelta(days=1), time.min) if end_date else None
    return start, end


def to_iso_z(value: datetime) -> str:
    """Render a naive UTC datetime as ISO-8601 with milliseconds and a Z suffix."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"
