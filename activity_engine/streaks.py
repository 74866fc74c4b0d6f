"""Consecutive-day streaks from the routine completion log."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from activity_engine.config import LOCAL_TIMEZONE
from activity_engine.schema import RoutineCompletion, StreakInfo
from activity_engine.timeutils import local_date


def covered_dates(completions: Iterable[RoutineCompletion], tz: tzinfo = LOCAL_TIMEZONE) -> set[date]:
    return {local_date(completion.completed_at, tz) for completion in completions}


def compute_streaks(
    completions: Iterable[RoutineCompletion],
    today: Optional[date] = None,
    tz: tzinfo = LOCAL_TIMEZONE,
) -> StreakInfo:
    """Current and longest run of consecutive days with a completion.

    The current streak still counts from yesterday when today has no
    completion yet. Ties for the longest run keep the earliest one.
    """

    days = covered_dates(completions, tz)
    if not days:
        return StreakInfo(current=0, longest=0, last_completion_date=None)

    today = today or datetime.now(tz).date()
    one_day = timedelta(days=1)

    current = 0
    if today in days:
        check = today
    elif today - one_day in days:
        check = today - one_day
    else:
        check = None
    while check is not None and check in days:
        current += 1
        check -= one_day

    longest = 0
    longest_start = None
    run_length = 0
    run_start = None
    previous = None
    for day in sorted(days):
        if previous is not None and day == previous + one_day:
            run_length += 1
        else:
            run_length, run_start = 1, day
        if run_length > longest:
            longest, longest_start = run_length, run_start
        previous = day

    return StreakInfo(
        current=current,
        longest=longest,
        last_completion_date=max(days),
        longest_start=longest_start,
    )


def completions_for_routine(completions: Iterable[RoutineCompletion], routine_id: str) -> list[RoutineCompletion]:
    return [completion for completion in completions if completion.routine_id == routine_id]


def completions_in_range(
    completions: Iterable[RoutineCompletion],
    start: datetime,
    end: datetime,
) -> list[RoutineCompletion]:
    """Completions with ``start <= completed_at <= end``."""

    return [completion for completion in completions if start <= completion.completed_at <= end]
