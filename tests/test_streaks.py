from datetime import date, datetime
from zoneinfo import ZoneInfo

from activity_engine.schema import RoutineCompletion
from activity_engine.streaks import (
    completions_for_routine,
    completions_in_range,
    compute_streaks,
)

UTC = ZoneInfo("UTC")


def done(day, hour=8, routine_id="morning", month=3):
    moment = datetime(2025, month, day, hour, 0, tzinfo=UTC)
    return RoutineCompletion(routine_id, f"{routine_id}-{day}-{hour}", moment, task_count=2)


def test_current_and_longest_streak():
    log = [done(day) for day in (10, 11, 12, 14, 15, 16)]
    info = compute_streaks(log, today=date(2025, 3, 16), tz=UTC)

    assert info.current == 3
    assert info.longest == 3
    assert info.longest_start == date(2025, 3, 10)
    assert info.last_completion_date == date(2025, 3, 16)


def test_empty_log():
    info = compute_streaks([], today=date(2025, 3, 16), tz=UTC)
    assert (info.current, info.longest, info.last_completion_date) == (0, 0, None)


def test_streak_survives_until_today_is_done():
    log = [done(day) for day in (13, 14, 15)]
    assert compute_streaks(log, today=date(2025, 3, 16), tz=UTC).current == 3


def test_missed_day_breaks_current_streak():
    log = [done(day) for day in (12, 13, 14)]
    info = compute_streaks(log, today=date(2025, 3, 16), tz=UTC)
    assert info.current == 0
    assert info.longest == 3


def test_multiple_completions_per_day_count_once():
    log = [done(15, 7), done(15, 19), done(16, 8), done(16, 9)]
    info = compute_streaks(log, today=date(2025, 3, 16), tz=UTC)
    assert info.current == 2
    assert info.longest == 2


def test_current_never_exceeds_longest():
    log = [done(1), done(2), done(10), done(11), done(12), done(13)]
    info = compute_streaks(log, today=date(2025, 3, 13), tz=UTC)
    assert info.current == info.longest == 4
    assert info.longest_start == date(2025, 3, 10)


def test_days_follow_local_timezone():
    tz = ZoneInfo("America/Los_Angeles")
    # 02:00 UTC on the 16th is still the 15th in Los Angeles
    log = [done(15, 18), done(16, 2)]
    assert compute_streaks(log, today=date(2025, 3, 16), tz=UTC).current == 2
    assert compute_streaks(log, today=date(2025, 3, 15), tz=tz).current == 1


def test_filters():
    log = [done(10), done(11, routine_id="evening"), done(12)]
    assert len(completions_for_routine(log, "morning")) == 2

    window = completions_in_range(log, datetime(2025, 3, 11, tzinfo=UTC), datetime(2025, 3, 12, 8, tzinfo=UTC))
    assert [c.routine_id for c in window] == ["evening", "morning"]
