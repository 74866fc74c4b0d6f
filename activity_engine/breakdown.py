"""Per-goal and per-day time breakdowns built from attributed impacts."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from activity_engine.config import LOCAL_TIMEZONE
from activity_engine.durations import impact_end, split_by_day, utc_now
from activity_engine.schema import DurationSegment, Impact
from activity_engine.timeutils import WEEKDAY_NAMES, local_date, start_of_day, weekday_name


@dataclass
class Goal:
    id: str
    name: str
    color: Optional[str] = None


@dataclass
class ActivityInfo:
    activity_name: str
    start_time: datetime
    duration_minutes: int
    day: str


def _empty_week() -> dict[str, int]:
    return {name: 0 for name in WEEKDAY_NAMES}


@dataclass
class GoalTimeBreakdown:
    goal_id: Optional[str]
    goal_name: str
    goal_color: str
    total_minutes: int = 0
    daily_breakdown: dict[str, int] = field(default_factory=_empty_week)
    activities: list[ActivityInfo] = field(default_factory=list)


@dataclass
class WeeklyBreakdown:
    goals: list[GoalTimeBreakdown]
    uncategorized: GoalTimeBreakdown
    total_minutes: int


def daily_totals(
    segments: Iterable[DurationSegment],
    include_running: bool = True,
) -> dict[date, int]:
    """Minutes per calendar day.

    Pass ``include_running=False`` for totals that get stored, since a
    running segment keeps growing.
    """

    totals: dict[date, int] = defaultdict(int)
    for segment in segments:
        if segment.running and not include_running:
            continue
        totals[segment.day] += segment.duration_minutes
    return dict(totals)


def weekly_breakdown(
    impacts: Sequence[Impact],
    week_start: date,
    goals: Sequence[Goal] = (),
    now_provider: Callable[[], datetime] = utc_now,
    tz: tzinfo = LOCAL_TIMEZONE,
) -> WeeklyBreakdown:
    """Time per goal and weekday for the week starting at ``week_start``."""

    goals_by_id = {goal.id: goal for goal in goals}
    range_start = start_of_day(week_start, tz)
    range_end = start_of_day(week_start + timedelta(days=7), tz)
    week = sorted(
        (impact for impact in impacts if range_start <= impact.timestamp < range_end),
        key=lambda impact: impact.timestamp,
    )

    now = now_provider()
    breakdowns: dict[str, GoalTimeBreakdown] = {}
    uncategorized = GoalTimeBreakdown(goal_id=None, goal_name="Uncategorized", goal_color="gray")

    for index, impact in enumerate(week):
        # Successor is searched across all goals
        successor = week[index + 1] if index + 1 < len(week) else None
        if impact.goal_id:
            target = breakdowns.get(impact.goal_id)
            if target is None:
                goal = goals_by_id.get(impact.goal_id)
                target = GoalTimeBreakdown(
                    goal_id=impact.goal_id,
                    goal_name=goal.name if goal else "Unknown Goal",
                    goal_color=(goal.color if goal else None) or "gray",
                )
                breakdowns[impact.goal_id] = target
        else:
            target = uncategorized

        end, running = impact_end(impact, successor, now, tz)
        for segment in split_by_day(impact, end, tz, running):
            target.daily_breakdown[weekday_name(segment.day)] += segment.duration_minutes
            target.total_minutes += segment.duration_minutes

        target.activities.append(
            ActivityInfo(
                activity_name=impact.activity_name,
                start_time=impact.timestamp,
                duration_minutes=int((end - impact.timestamp).total_seconds() // 60),
                day=weekday_name(local_date(impact.timestamp, tz)),
            )
        )

    ordered = sorted(breakdowns.values(), key=lambda item: item.total_minutes, reverse=True)
    total = sum(item.total_minutes for item in ordered) + uncategorized.total_minutes
    return WeeklyBreakdown(goals=ordered, uncategorized=uncategorized, total_minutes=total)


def format_minutes(minutes: int) -> str:
    """Render minutes as ``8h 30m``, ``2h`` or ``45m``."""

    hours, mins = divmod(int(minutes), 60)
    if hours and mins:
        return f"{hours}h {mins}m"
    if hours:
        return f"{hours}h"
    return f"{mins}m"
