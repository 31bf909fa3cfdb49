# core/clock.py

import calendar
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # backends without timezone support hand back naive values stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def minutes_between(later: datetime, earlier: datetime) -> int:
    """Whole minutes from earlier to later, truncated toward zero."""
    seconds = (as_utc(later) - as_utc(earlier)).total_seconds()
    return int(seconds / 60)


def add_calendar_month(value: datetime) -> datetime:
    """Same day next month, clamped to that month's last day."""
    year = value.year + (1 if value.month == 12 else 0)
    month = 1 if value.month == 12 else value.month + 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(value.day, last_day))
