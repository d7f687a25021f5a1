"""Time helpers.

Timestamps are stored as naive UTC datetimes so that comparisons behave the
same on SQLite (which drops tzinfo) and PostgreSQL.
"""

from datetime import datetime

import pytz


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(pytz.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(pytz.utc).replace(tzinfo=None)


def as_utc(value: datetime) -> datetime:
    """Attach UTC tzinfo to a stored naive datetime for serialization."""
    if value is None or value.tzinfo is not None:
        return value
    return pytz.utc.localize(value)
