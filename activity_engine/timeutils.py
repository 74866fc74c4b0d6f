"""Calendar-day helpers shared by the timeline and scheduling modules."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, datetime, time, timedelta, tzinfo

from activity_engine.config import LOCAL_TIMEZONE

WEEKDAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def local_date(moment: datetime, tz: tzinfo = LOCAL_TIMEZONE) -> date:
    return moment.astimezone(tz).date()


def start_of_day(day: date | datetime, tz: tzinfo = LOCAL_TIMEZONE) -> datetime:
    if isinstance(day, datetime):
        day = local_date(day, tz)
    return datetime.combine(day, time.min, tzinfo=tz)


def next_midnight(moment: datetime, tz: tzinfo = LOCAL_TIMEZONE) -> datetime:
    return start_of_day(local_date(moment, tz) + timedelta(days=1), tz)


def end_of_day(moment: datetime, tz: tzinfo = LOCAL_TIMEZONE) -> datetime:
    """Last millisecond (23:59:59.999) of the moment's calendar day."""

    return datetime.combine(local_date(moment, tz), time(23, 59, 59, 999000), tzinfo=tz)


def iter_days(first: date, last: date) -> Iterator[date]:
    day = first
    while day <= last:
        yield day
        day += timedelta(days=1)


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]
