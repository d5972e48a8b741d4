"""
Calendar helpers for campaign deadlines.

All deadlines are end-of-day (23:59:59) in the crawl timezone. Remaining
days compare calendar dates, so a deadline later today counts as 0.
"""
import os
import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from dateutil import tz

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = os.getenv("CRAWL_TIMEZONE", "Asia/Seoul")

END_OF_DAY = time(23, 59, 59)


def get_timezone(name: Optional[str] = None):
    zone = tz.gettz(name or DEFAULT_TIMEZONE)
    if zone is None:
        logger.warning(f"[dates] Unknown timezone {name or DEFAULT_TIMEZONE}, using UTC")
        return tz.UTC
    return zone


def now_local(zone=None) -> datetime:
    return datetime.now(zone or get_timezone())


def to_local(value: datetime, zone=None) -> datetime:
    zone = zone or get_timezone()
    if value.tzinfo is None:
        return value.replace(tzinfo=zone)
    return value.astimezone(zone)


def end_of_day(day: date, zone=None) -> datetime:
    return datetime.combine(day, END_OF_DAY, tzinfo=zone or get_timezone())


def days_from_now(days: int, now: Optional[datetime] = None) -> datetime:
    """End of the calendar day `days` after now."""
    now = to_local(now) if now else now_local()
    return end_of_day(now.date() + timedelta(days=days), now.tzinfo)


def remaining_days(deadline: datetime, now: Optional[datetime] = None) -> int:
    now = to_local(now) if now else now_local()
    deadline = to_local(deadline, now.tzinfo)
    return (deadline.date() - now.date()).days


def safe_date(year: int, month: int, day: int) -> Optional[date]:
    """date() that returns None for impossible dates like 2/30."""
    try:
        return date(year, month, day)
    except ValueError:
        return None


def month_day_deadline(month: int, day: int, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Deadline for a month/day with no year.

    Assumes the current year and rolls to next year when the date has
    already passed. Returns None for impossible dates.
    """
    now = to_local(now) if now else now_local()
    target = safe_date(now.year, month, day)
    if target is None:
        # Feb 29 may exist next year only
        target = safe_date(now.year + 1, month, day)
        if target is None:
            return None
        return end_of_day(target, now.tzinfo)
    if target < now.date():
        target = safe_date(now.year + 1, month, day)
        if target is None:
            return None
    return end_of_day(target, now.tzinfo)


def day_of_month_deadline(day: int, now: Optional[datetime] = None) -> Optional[datetime]:
    """Deadline for a bare day of month; rolls to next month when passed."""
    now = to_local(now) if now else now_local()
    target = safe_date(now.year, now.month, day)
    if target is None or target < now.date():
        year, month = (now.year + 1, 1) if now.month == 12 else (now.year, now.month + 1)
        target = safe_date(year, month, day)
        if target is None:
            return None
    return end_of_day(target, now.tzinfo)
