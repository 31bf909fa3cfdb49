# core/membership.py

from datetime import datetime

from parkmeter.core.clock import add_calendar_month, as_utc


def is_valid_at(expiry_date: datetime, timestamp: datetime) -> bool:
    # the expiry instant itself already counts as expired
    return as_utc(timestamp) < as_utc(expiry_date)


def next_expiry(expiry_date: datetime, now: datetime) -> datetime:
    """
    Expiry after one renewal: a still-valid pass extends from its current
    expiry, a lapsed one restarts from now.
    """
    base = max(as_utc(expiry_date), as_utc(now))
    return add_calendar_month(base)


def first_expiry(now: datetime) -> datetime:
    return add_calendar_month(as_utc(now))
