from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc_naive(dt: datetime) -> datetime:
    """Aware datetimes are converted to UTC; naive ones are assumed UTC already."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def start_of_week(dt: datetime) -> datetime:
    """Monday 00:00 of the ISO week containing dt."""
    day = dt.replace(hour=0, minute=0, second=0, microsecond=0)
    return day - timedelta(days=day.weekday())


def end_of_week(dt: datetime) -> datetime:
    """Last representable instant (Sunday 23:59:59.999999) of dt's ISO week."""
    return start_of_week(dt) + timedelta(days=7) - timedelta(microseconds=1)


def week_ranges(count: int, now: Optional[datetime] = None) -> list[tuple[datetime, datetime]]:
    """
    `count` consecutive Monday-start weeks ending with the week containing `now`.

    Oldest week first. Bounds are inclusive on both ends.
    """
    if count < 1:
        return []
    current_start = start_of_week(as_utc_naive(now) if now is not None else utcnow())
    ranges = []
    for offset in range(count - 1, -1, -1):
        start = current_start - timedelta(weeks=offset)
        ranges.append((start, end_of_week(start)))
    return ranges


def format_week_label(start: datetime, end: datetime) -> str:
    return f"{start:%d/%m/%y} - {end:%d/%m/%y}"
