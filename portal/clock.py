"""Time helpers. All stored timestamps are naive UTC."""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as naive UTC (matches what the database columns store)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_timestamp(value: datetime) -> int:
    """Naive-UTC datetime to integer epoch seconds (JWT NumericDate)"""
    return int(value.replace(tzinfo=timezone.utc).timestamp())


def from_timestamp(value: int) -> datetime:
    """Epoch seconds to naive-UTC datetime"""
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)
