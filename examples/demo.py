"""Demo script for activity-engine."""

import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from activity_engine.adapters import activitywatch, csv_adapter, json_adapter
from activity_engine.breakdown import daily_totals, format_minutes, weekly_breakdown
from activity_engine.config import LOCAL_TIMEZONE, LOG_FORMAT, LOG_LEVEL
from activity_engine.durations import attribute
from activity_engine.insights import analyze_activity_patterns
from activity_engine.normalizer import NormalizeOptions, normalize
from activity_engine.routines import evaluate
from activity_engine.schema import SchedulerWatermark
from activity_engine.streaks import compute_streaks
from activity_engine.time_blocks import chunk_days

HERE = Path(__file__).resolve().parent
NOW = datetime(2025, 3, 12, 18, 0, tzinfo=LOCAL_TIMEZONE)


def main() -> None:
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

    buckets = activitywatch.parse(str(HERE / "sample_export.json"))
    events = normalize(buckets, NormalizeOptions(min_duration_seconds=60), NOW)
    for day, blocks in chunk_days(events, NOW.date(), NOW.date()).items():
        print(f"Blocks on {day}:")
        for block in blocks:
            print(f"  {block.start_time:%H:%M}-{block.end_time:%H:%M} {block.dominant_event.display_name}")

    impacts = csv_adapter.parse(str(HERE / "sample_impacts.csv"))
    segments = attribute(impacts, lambda: NOW)
    print("Minutes per day:", {day.isoformat(): mins for day, mins in daily_totals(segments).items()})

    week = weekly_breakdown(impacts, NOW.date() - timedelta(days=NOW.weekday()), now_provider=lambda: NOW)
    for goal in week.goals:
        print(f"Goal {goal.goal_id}: {format_minutes(goal.total_minutes)}")
    print("Patterns:", [pattern.activity for pattern in analyze_activity_patterns(impacts)])

    routines = json_adapter.parse_routines(str(HERE / "sample_routines.json"))
    result = evaluate(routines, [], SchedulerWatermark(), NOW)
    print("Due routines:", [routine.id for routine in result.due_routines])
    print("Invalid routines:", sorted(result.errors))

    completions = json_adapter.parse_completions(str(HERE / "sample_completions.json"))
    print("Streaks:", compute_streaks(completions, today=NOW.date()))


if __name__ == "__main__":
    main()
