"""Duration attribution for manual check-ins (impacts).

An impact has no stored end. It runs until the next impact, whatever goal
that one belongs to. The last impact of today is still running and ends
at ``now``. The last impact of any earlier day ends at 23:59:59.999 of
that day. Intervals crossing midnight are split into one segment per
calendar day.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

from activity_engine.config import LOCAL_TIMEZONE
from activity_engine.schema import DurationSegment, Impact
from activity_engine.timeutils import end_of_day, local_date, next_midnight


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def impact_end(
    impact: Impact,
    successor: Optional[Impact],
    now: datetime,
    tz: tzinfo = LOCAL_TIMEZONE,
) -> tuple[datetime, bool]:
    """End instant of ``impact`` and whether it is still running."""

    if successor is not None:
        end, running = successor.timestamp, False
    elif local_date(impact.timestamp, tz) == local_date(now, tz):
        end, running = now, True
    else:
        end, running = end_of_day(impact.timestamp, tz), False
    return max(end, impact.timestamp), running


def impact_duration(
    impact: Impact,
    successor: Optional[Impact],
    now: datetime,
    tz: tzinfo = LOCAL_TIMEZONE,
) -> timedelta:
    end, _ = impact_end(impact, successor, now, tz)
    return end - impact.timestamp


def split_by_day(
    impact: Impact,
    end: datetime,
    tz: tzinfo = LOCAL_TIMEZONE,
    running: bool = False,
) -> list[DurationSegment]:
    """Cut [impact.timestamp, end) at every local midnight it crosses."""

    segments = []
    cursor = impact.timestamp
    while True:
        boundary = next_midnight(cursor, tz)
        segment_end = min(end, boundary)
        segments.append(
            DurationSegment(
                day=local_date(cursor, tz),
                activity_name=impact.activity_name,
                start=cursor,
                end=segment_end,
                goal_id=impact.goal_id,
                running=running,
            )
        )
        if end <= boundary:
            return segments
        cursor = boundary


def attribute(
    impacts: Sequence[Impact],
    now_provider: Callable[[], datetime] = utc_now,
    tz: tzinfo = LOCAL_TIMEZONE,
) -> list[DurationSegment]:
    """Attribute every impact to the calendar days it occupies.

    Segments flagged ``running`` depend on the clock and must be
    recomputed rather than stored.
    """

    if not impacts:
        return []

    now = now_provider()
    ordered = sorted(impacts, key=lambda impact: impact.timestamp)
    segments: list[DurationSegment] = []
    for index, impact in enumerate(ordered):
        successor = ordered[index + 1] if index + 1 < len(ordered) else None
        end, running = impact_end(impact, successor, now, tz)
        segments.extend(split_by_day(impact, end, tz, running))
    return segments
