"""
Time helpers.

Timestamps are stored as naive UTC so that SQLite and PostgreSQL compare
them the same way; they are made timezone-aware again on the way out.
"""

from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1)


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def isoformat_utc(value: datetime | None) -> str | None:
    if value is None:
        return None
    return to_naive_utc(value).replace(tzinfo=timezone.utc).isoformat()


def window_bucket(value: datetime, window: timedelta) -> int:
    """Index of the fixed-width window that ``value`` falls into."""
    elapsed = to_naive_utc(value) - EPOCH
    return int(elapsed.total_seconds() // window.total_seconds())
