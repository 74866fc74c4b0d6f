"""Summarize an ActivityWatch export as per-day time blocks."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from activity_engine.adapters import activitywatch
from activity_engine.config import DEFAULT_BLOCK_SIZE_MINUTES, LOCAL_TIMEZONE, LOG_FORMAT, LOG_LEVEL
from activity_engine.normalizer import NormalizeOptions, import_preview, normalize
from activity_engine.time_blocks import chunk_days
from activity_engine.timeutils import local_date


def _summarize(export_path: Path, options: NormalizeOptions, block_size: float) -> dict:
    buckets = activitywatch.parse(str(export_path))
    now = datetime.now(timezone.utc)
    preview = import_preview(buckets, options, now)
    events = normalize(buckets, options, now)

    report = {
        "buckets": preview.bucket_count,
        "events_total": preview.total_event_count,
        "events_kept": len(events),
        "bucket_types": preview.bucket_types,
        "days": {},
    }
    if not events:
        return report

    first_day = local_date(events[0].timestamp, LOCAL_TIMEZONE)
    last_day = local_date(max(event.end for event in events), LOCAL_TIMEZONE)
    for day, blocks in chunk_days(events, first_day, last_day, block_size).items():
        report["days"][day.isoformat()] = [
            {
                "start": block.start_time.isoformat(),
                "end": block.end_time.isoformat(),
                "activity": block.dominant_event.display_name,
                "covered_seconds": round(block.total_covered_seconds, 1),
            }
            for block in blocks
        ]
    return report


def main() -> None:
    parser = argparse.ArgumentParser(description="Summarize an ActivityWatch export")
    parser.add_argument("--export", required=True, help="Path to the ActivityWatch JSON export")
    parser.add_argument("--days-back", type=float, default=NormalizeOptions.days_back)
    parser.add_argument("--min-duration", type=float, default=NormalizeOptions.min_duration_seconds)
    parser.add_argument("--block-minutes", type=float, default=DEFAULT_BLOCK_SIZE_MINUTES)
    args = parser.parse_args()

    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

    options = NormalizeOptions(days_back=args.days_back, min_duration_seconds=args.min_duration)
    try:
        report = _summarize(Path(args.export), options, args.block_minutes)
    except activitywatch.ImportParseError as exc:
        print(f"Import failed: {exc}", file=sys.stderr)
        sys.exit(2)

    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    main()
