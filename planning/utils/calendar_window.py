from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from planning.config import settings


WEEK_END_CLOCK = time(hour=23, minute=59)


def _local_day(day: date | datetime, tz: str | None = None) -> date:
    if isinstance(day, datetime):
        if day.tzinfo is not None and day.tzinfo.utcoffset(day) is not None:
            day = day.astimezone(ZoneInfo(tz or settings.app_timezone))
        return day.date()
    return day


def week_dates(day: date | datetime, tz: str | None = None) -> tuple[date, date]:
    local = _local_day(day, tz)
    monday = local - timedelta(days=local.weekday())
    return monday, monday + timedelta(days=6)


def week_window(day: date | datetime, tz: str | None = None) -> tuple[datetime, datetime]:
    """Monday 00:00 to Sunday 23:59 of the week holding ``day``, in the tenant calendar."""
    monday, sunday = week_dates(day, tz)
    return datetime.combine(monday, time.min), datetime.combine(sunday, WEEK_END_CLOCK)


def month_dates(day: date | datetime, tz: str | None = None) -> tuple[date, date]:
    local = _local_day(day, tz)
    first = local.replace(day=1)
    next_month = (first + timedelta(days=32)).replace(day=1)
    last = next_month - timedelta(days=1)
    return week_dates(first)[0], week_dates(last)[1]
