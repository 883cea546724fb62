"""
UTC datetime helpers.

Cache timestamps, invalidation events and session end dates are all
timezone-aware UTC.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return the current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Normalize a datetime to UTC.

    Naive values are assumed to already be UTC; aware values are converted.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def from_timestamp_utc(timestamp: float) -> datetime:
    """
    Build a UTC datetime from Unix seconds.

    Session end dates arrive as epoch seconds from the session service.
    """
    return datetime.fromtimestamp(timestamp, tz=UTC)
