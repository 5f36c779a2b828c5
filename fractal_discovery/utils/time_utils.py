"""
Time helpers.

Persisted records carry epoch milliseconds (the storage layout favorites and
model metadata have always used); the engine works in timezone-aware UTC
datetimes.  These helpers are the only place the two are converted.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def to_epoch_ms(dt: datetime) -> int:
    """Convert a datetime to integer epoch milliseconds.

    Naive datetimes are assumed to be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(round(dt.timestamp() * 1000))


def from_epoch_ms(ms: int | float) -> datetime:
    """Convert epoch milliseconds to a timezone-aware UTC datetime."""
    return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc)


def age_days(then: datetime, now: datetime) -> float:
    """Return fractional days elapsed from ``then`` to ``now``."""
    return (now - then).total_seconds() / 86400.0
