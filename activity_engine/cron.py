"""Cron expression helpers backed by APScheduler's ``CronTrigger``."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import datetime, timedelta, tzinfo

from apscheduler.triggers.combining import OrTrigger
from apscheduler.triggers.cron import CronTrigger

from activity_engine.config import LOCAL_TIMEZONE
from activity_engine.schema import Routine

logger = logging.getLogger(__name__)

# Crontab numbering, 0 and 7 are both Sunday
_DAY_NAMES = ["sun", "mon", "tue", "wed", "thu", "fri", "sat", "sun"]
_NUMERIC_DAY_RE = re.compile(r"^(\*|[0-7](?:-[0-7])?)$")


class CronExpressionError(ValueError):
    """Raised when a cron expression cannot be parsed."""


def _crontab_day_of_week(field: str) -> str:
    """Translate crontab day-of-week numbers into day names.

    APScheduler counts weekdays from Monday, crontab from Sunday, so numeric
    values are expanded into explicit names.
    """

    if field in ("*", "?"):
        return "*"

    names: list[str] = []
    for part in field.split(","):
        expr, _, step = part.partition("/")
        if not _NUMERIC_DAY_RE.match(expr):
            names.append(part.lower())
            continue

        if expr == "*":
            low, high = 0, 6
        elif "-" in expr:
            low, high = (int(value) for value in expr.split("-"))
        else:
            low = high = int(expr)
            if step:
                high = 6
        if low > high:
            raise CronExpressionError(f"Invalid day-of-week range '{part}'")

        try:
            step_value = int(step) if step else 1
        except ValueError as exc:
            raise CronExpressionError(f"Invalid day-of-week step '{part}'") from exc
        if step_value < 1:
            raise CronExpressionError(f"Invalid day-of-week step '{part}'")

        names.extend(_DAY_NAMES[day] for day in range(low, high + 1, step_value))

    return ",".join(dict.fromkeys(names))


def _is_unrestricted(field: str) -> bool:
    return field in ("*", "?")


def parse_cron(expression: str, tz: tzinfo = LOCAL_TIMEZONE) -> CronTrigger | OrTrigger:
    """Build a trigger from a 5-field crontab or a 6-field (seconds first) expression.

    As in crontab, when both day-of-month and day-of-week are restricted the
    expression fires on days matching either field.
    """

    fields = (expression or "").split()
    if len(fields) == 5:
        second, (minute, hour, day, month, day_of_week) = "0", fields
    elif len(fields) == 6:
        second, minute, hour, day, month, day_of_week = fields
    else:
        raise CronExpressionError(f"Expected 5 or 6 fields in cron expression '{expression}'")

    common = dict(second=second, minute=minute, hour=hour, month=month, timezone=tz)
    try:
        weekdays = _crontab_day_of_week(day_of_week)
        if _is_unrestricted(day) or _is_unrestricted(day_of_week):
            return CronTrigger(day="*" if day == "?" else day, day_of_week=weekdays, **common)
        return OrTrigger(
            [
                CronTrigger(day=day, **common),
                CronTrigger(day_of_week=weekdays, **common),
            ]
        )
    except ValueError as exc:
        raise CronExpressionError(f"Invalid cron expression '{expression}': {exc}") from exc


def next_occurrence(expression: str, after: datetime, tz: tzinfo = LOCAL_TIMEZONE) -> datetime | None:
    """First firing strictly after ``after``, or None if it never fires again."""

    trigger = parse_cron(expression, tz)
    return trigger.get_next_fire_time(None, after + timedelta(microseconds=1))


def time_until_next(expression: str, now: datetime, tz: tzinfo = LOCAL_TIMEZONE) -> timedelta | None:
    upcoming = next_occurrence(expression, now, tz)
    return upcoming - now if upcoming is not None else None


def is_valid_cron(expression: str) -> bool:
    try:
        parse_cron(expression)
    except CronExpressionError as exc:
        logger.debug("Rejected cron expression: %s", exc)
        return False
    return True


def sort_by_next_occurrence(
    routines: Iterable[Routine],
    now: datetime,
    tz: tzinfo = LOCAL_TIMEZONE,
) -> list[Routine]:
    """Soonest routine first; unscheduled or invalid ones go last."""

    def key(routine: Routine):
        if not routine.cron_expression:
            return (1, now)
        try:
            upcoming = next_occurrence(routine.cron_expression, now, tz)
        except CronExpressionError:
            return (1, now)
        return (0, upcoming) if upcoming is not None else (1, now)

    return sorted(routines, key=key)
