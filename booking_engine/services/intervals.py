"""Half-open interval helpers shared by slot generation and conflict detection."""

from datetime import date, datetime, time, timedelta
from typing import List


def overlaps(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Overlap test for ``[start_a, end_a)`` and ``[start_b, end_b)``.

    Touching boundaries do not overlap. Every component of the engine uses this
    rule, so a slot marked available can never be reported as a conflict.
    """
    return start_a < end_b and start_b < end_a


def at_time(day: date, value: time) -> datetime:
    return datetime.combine(day, value)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    """Exclusive end of ``day``, i.e. midnight of the next day."""
    return start_of_day(day) + timedelta(days=1)


def days_spanned(start: datetime, end: datetime) -> List[date]:
    """Calendar dates touched by ``[start, end)``."""
    last = (end - timedelta(microseconds=1)).date() if end > start else start.date()
    days = []
    current = start.date()
    while current <= last:
        days.append(current)
        current += timedelta(days=1)
    return days


def format_time(value: datetime) -> str:
    return value.strftime("%H:%M")
