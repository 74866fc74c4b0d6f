"""CSV adapter for check-in logs."""

from __future__ import annotations

import csv
from datetime import datetime

from activity_engine.config import LOCAL_TIMEZONE, TRACKED_METRICS
from activity_engine.schema import Impact

_REQUIRED_FIELDS = {"activity", "timestamp"}


def _parse_row(row: dict, row_number: int) -> Impact:
    missing = sorted(field for field in _REQUIRED_FIELDS if not row.get(field))
    if missing:
        raise ValueError(f"Row {row_number}: missing required fields {missing}")

    try:
        timestamp = datetime.fromisoformat(row["timestamp"].strip())
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Row {row_number}: malformed timestamp") from exc
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=LOCAL_TIMEZONE)

    metrics = {}
    for metric in TRACKED_METRICS:
        raw = row.get(metric)
        if raw in (None, ""):
            continue
        try:
            metrics[metric] = float(raw)
        except ValueError as exc:
            raise ValueError(f"Row {row_number}: invalid {metric}") from exc

    goal_raw = row.get("goal_id")
    return Impact(
        activity_name=row["activity"].strip(),
        timestamp=timestamp,
        goal_id=goal_raw.strip() if goal_raw and goal_raw.strip() else None,
        metrics=metrics,
    )


def parse(file_path: str) -> list[Impact]:
    """Parse a CSV check-in log; metric columns are optional."""

    with open(file_path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            return []

        impacts: list[Impact] = []
        for row_number, row in enumerate(reader, start=2):
            impacts.append(_parse_row(row, row_number))
        return impacts
