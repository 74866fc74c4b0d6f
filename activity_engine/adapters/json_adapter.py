"""JSON adapter for check-ins, routines, tasks and completions."""

from __future__ import annotations

import json
from datetime import datetime

from activity_engine.config import LOCAL_TIMEZONE
from activity_engine.schema import Impact, Routine, RoutineCompletion, Task, TaskTemplate


def _require(item: dict, fields: set[str], label: str) -> None:
    missing = sorted(field for field in fields if item.get(field) in (None, ""))
    if missing:
        raise ValueError(f"{label}: missing required fields {missing}")


def _timestamp(value, label: str, field: str = "timestamp") -> datetime:
    try:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            # epoch milliseconds, as stored by the web client
            return datetime.fromtimestamp(value / 1000, LOCAL_TIMEZONE)
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"{label}: malformed {field}") from exc
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=LOCAL_TIMEZONE)


def _load_list(file_path: str) -> list:
    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)

    if not isinstance(payload, list):
        raise ValueError("JSON payload must be a list of objects")
    for index, item in enumerate(payload, start=1):
        if not isinstance(item, dict):
            raise ValueError(f"Item {index}: expected an object")
    return payload


def _parse_impact(item: dict, index: int) -> Impact:
    label = f"Item {index}"
    _require(item, {"activity", "timestamp"}, label)

    metrics = {}
    for key, value in (item.get("metrics") or {}).items():
        try:
            metrics[str(key)] = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{label}: invalid metric '{key}'") from exc

    goal_raw = item.get("goal_id")
    return Impact(
        activity_name=str(item["activity"]).strip(),
        timestamp=_timestamp(item["timestamp"], label),
        goal_id=str(goal_raw).strip() if goal_raw else None,
        metrics=metrics,
    )


def _parse_routine(item: dict, index: int) -> Routine:
    label = f"Item {index}"
    _require(item, {"id", "name"}, label)

    templates = []
    for position, task in enumerate(item.get("tasks") or [], start=1):
        if not isinstance(task, dict) or not task.get("name"):
            raise ValueError(f"{label}: task {position} needs a name")
        templates.append(
            TaskTemplate(
                id=str(task.get("id") or position),
                name=str(task["name"]),
                description=task.get("description"),
            )
        )

    return Routine(
        id=str(item["id"]),
        name=str(item["name"]),
        cron_expression=item.get("cron") or None,
        tasks=templates,
        goal_ids=[str(goal) for goal in item.get("goal_ids") or []],
        goal_id=item.get("goal_id"),
    )


def _parse_task(item: dict, index: int) -> Task:
    label = f"Item {index}"
    _require(item, {"id", "name", "status", "created_at"}, label)

    completed_raw = item.get("completed_at")
    return Task(
        id=str(item["id"]),
        name=str(item["name"]),
        status=str(item["status"]),
        created_at=_timestamp(item["created_at"], label, "created_at"),
        routine_id=item.get("routine_id"),
        routine_instance_id=item.get("routine_instance_id"),
        goal_id=item.get("goal_id"),
        description=item.get("description"),
        completed_at=_timestamp(completed_raw, label, "completed_at") if completed_raw else None,
    )


def _parse_completion(item: dict, index: int) -> RoutineCompletion:
    label = f"Item {index}"
    _require(item, {"routine_id", "routine_instance_id", "completed_at"}, label)

    try:
        task_count = int(item.get("task_count", 0))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{label}: invalid task_count") from exc

    return RoutineCompletion(
        routine_id=str(item["routine_id"]),
        routine_instance_id=str(item["routine_instance_id"]),
        completed_at=_timestamp(item["completed_at"], label, "completed_at"),
        task_count=task_count,
        routine_name=str(item.get("routine_name") or ""),
    )


def parse_impacts(file_path: str) -> list[Impact]:
    """Parse a JSON list of check-ins."""

    return [_parse_impact(item, i) for i, item in enumerate(_load_list(file_path), start=1)]


def parse_routines(file_path: str) -> list[Routine]:
    return [_parse_routine(item, i) for i, item in enumerate(_load_list(file_path), start=1)]


def parse_tasks(file_path: str) -> list[Task]:
    return [_parse_task(item, i) for i, item in enumerate(_load_list(file_path), start=1)]


def parse_completions(file_path: str) -> list[RoutineCompletion]:
    return [_parse_completion(item, i) for i, item in enumerate(_load_list(file_path), start=1)]
