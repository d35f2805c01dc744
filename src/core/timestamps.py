"""Helpers for turning transcript wall-clock times into UTC instants."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def localize(naive: datetime, timezone_offset: Optional[int]) -> datetime:
    """Interpret a naive local time at offset hours east of UTC, return UTC."""

    offset = timezone(timedelta(hours=timezone_offset or 0))
    return naive.replace(tzinfo=offset).astimezone(timezone.utc)


def from_epoch_millis(millis: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime, keeping the millis."""

    seconds, remainder = divmod(int(millis), 1000)
    return datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(milliseconds=remainder)
