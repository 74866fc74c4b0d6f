from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from activity_engine.breakdown import Goal, daily_totals, format_minutes, weekly_breakdown
from activity_engine.durations import attribute
from activity_engine.schema import Impact

UTC = ZoneInfo("UTC")
WEEK_START = date(2025, 3, 10)
NOW = datetime(2025, 3, 11, 10, 0, tzinfo=UTC)
GOALS = [Goal("career", "Career", "blue"), Goal("health", "Health")]


def impact(name, day, hour, goal_id=None):
    return Impact(activity_name=name, timestamp=datetime(2025, 3, day, hour, 0, tzinfo=UTC), goal_id=goal_id)


def week_impacts():
    return [
        impact("Gaming", 9, 20, "fun"),
        impact("Work", 10, 9, "career"),
        impact("Browse", 10, 17),
        impact("Study", 10, 18, "career"),
        impact("Sleep", 10, 23, "health"),
        impact("Work", 11, 7, "career"),
    ]


def test_weekly_breakdown_per_goal():
    week = weekly_breakdown(week_impacts(), WEEK_START, GOALS, lambda: NOW, UTC)

    assert [(g.goal_id, g.total_minutes) for g in week.goals] == [("career", 960), ("health", 480)]
    career, health = week.goals
    assert career.goal_name == "Career"
    assert career.daily_breakdown["monday"] == 780
    assert career.daily_breakdown["tuesday"] == 180
    assert health.goal_color == "gray"
    assert health.daily_breakdown["monday"] == 60
    assert health.daily_breakdown["tuesday"] == 420
    assert week.uncategorized.total_minutes == 60
    assert week.uncategorized.goal_name == "Uncategorized"
    assert week.total_minutes == 1500


def test_weekly_breakdown_activities():
    week = weekly_breakdown(week_impacts(), WEEK_START, GOALS, lambda: NOW, UTC)
    career = week.goals[0]
    assert [(a.activity_name, a.duration_minutes, a.day) for a in career.activities] == [
        ("Work", 480, "monday"),
        ("Study", 300, "monday"),
        ("Work", 180, "tuesday"),
    ]


def test_weekly_breakdown_ignores_other_weeks():
    week = weekly_breakdown(week_impacts(), WEEK_START, GOALS, lambda: NOW, UTC)
    assert "fun" not in {g.goal_id for g in week.goals}

    empty = weekly_breakdown(week_impacts(), date(2025, 2, 3), GOALS, lambda: NOW, UTC)
    assert empty.goals == []
    assert empty.total_minutes == 0


def test_weekly_breakdown_unknown_goal():
    impacts = [impact("Mystery", 10, 9, "missing"), impact("Browse", 10, 10)]
    week = weekly_breakdown(impacts, WEEK_START, GOALS, lambda: NOW, UTC)
    assert week.goals[0].goal_name == "Unknown Goal"
    assert week.goals[0].goal_color == "gray"
    assert week.goals[0].total_minutes == 60


def test_daily_totals_can_skip_running_segments():
    segments = attribute(week_impacts()[1:], lambda: NOW, UTC)
    assert daily_totals(segments) == {date(2025, 3, 10): 900, date(2025, 3, 11): 600}
    assert daily_totals(segments, include_running=False) == {date(2025, 3, 10): 900, date(2025, 3, 11): 420}


@pytest.mark.parametrize("minutes, expected", [(510, "8h 30m"), (120, "2h"), (45, "45m"), (0, "0m")])
def test_format_minutes(minutes, expected):
    assert format_minutes(minutes) == expected
