"""Recurring routine evaluation against a persisted watermark."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from typing import Optional

from activity_engine.config import LOCAL_TIMEZONE
from activity_engine.cron import CronExpressionError, next_occurrence
from activity_engine.schema import Routine, RoutineCompletion, SchedulerWatermark, Task
from activity_engine.timeutils import start_of_day

logger = logging.getLogger(__name__)

STATUS_DUE = "due"
STATUS_DONE = "done"


@dataclass
class EvaluationResult:
    due_routines: list[Routine]
    tasks: list[Task]
    next_watermark: SchedulerWatermark
    errors: dict[str, str] = field(default_factory=dict)


def goal_ids_for_routine(routine: Routine) -> list[str]:
    if routine.goal_ids:
        return list(routine.goal_ids)
    return [routine.goal_id] if routine.goal_id else []


def routine_supports_goal(routine: Routine, goal_id: str) -> bool:
    return goal_id in goal_ids_for_routine(routine)


def routines_for_goal(routines: Iterable[Routine], goal_id: str) -> list[Routine]:
    return [routine for routine in routines if routine_supports_goal(routine, goal_id)]


def is_schedulable(routine: Routine) -> bool:
    return bool(routine.cron_expression and routine.cron_expression.strip() and routine.tasks)


def has_pending_instance(routine: Routine, tasks: Iterable[Task], today_start: datetime) -> bool:
    """A due task from this routine was already created today."""

    names = {template.name for template in routine.tasks}
    return any(
        task.routine_id == routine.id
        and task.name in names
        and task.status == STATUS_DUE
        and task.created_at >= today_start
        for task in tasks
    )


def should_trigger(
    expression: str,
    watermark: SchedulerWatermark,
    now: datetime,
    tz: tzinfo = LOCAL_TIMEZONE,
) -> bool:
    """Whether the expression fired in the window the watermark leaves unchecked.

    On the very first check the window starts at today's midnight
    (inclusive), otherwise just after the watermark.
    """

    if watermark.is_initial:
        window_start = start_of_day(now, tz) - timedelta(microseconds=1)
    else:
        window_start = watermark.as_datetime(tz)

    occurrence = next_occurrence(expression, window_start, tz)
    return occurrence is not None and window_start < occurrence <= now


def materialize(routine: Routine, now: datetime) -> list[Task]:
    """One due task per template, sharing a routine instance id."""

    stamp = int(now.timestamp() * 1000)
    instance_id = f"{routine.id}-{stamp}"
    goal_ids = goal_ids_for_routine(routine)
    goal_id = goal_ids[0] if goal_ids else None

    return [
        Task(
            id=f"{routine.id}-{template.id}-{stamp}",
            name=template.name,
            status=STATUS_DUE,
            created_at=now,
            routine_id=routine.id,
            routine_instance_id=instance_id,
            goal_id=goal_id,
            description=template.description or f"From routine: {routine.name}",
        )
        for template in routine.tasks
    ]


def evaluate(
    routines: Sequence[Routine],
    existing_tasks: Sequence[Task],
    watermark: SchedulerWatermark,
    now: datetime,
    tz: tzinfo = LOCAL_TIMEZONE,
) -> EvaluationResult:
    """Decide which routines fire this cycle and build their tasks.

    A bad cron expression only disqualifies its own routine. The returned
    watermark is ``now`` and must be persisted by the caller once the new
    tasks are stored.
    """

    today_start = start_of_day(now, tz)
    result = EvaluationResult(due_routines=[], tasks=[], next_watermark=SchedulerWatermark.at(now))

    for routine in routines:
        if not is_schedulable(routine):
            continue
        if has_pending_instance(routine, [*existing_tasks, *result.tasks], today_start):
            logger.debug("Routine %s already has due tasks today", routine.id)
            continue

        try:
            fire = should_trigger(routine.cron_expression, watermark, now, tz)
        except CronExpressionError as exc:
            logger.warning("Skipping routine %s: %s", routine.id, exc)
            result.errors[routine.id] = str(exc)
            continue

        if fire:
            logger.info("Triggering routine %s (%s)", routine.id, routine.name)
            result.due_routines.append(routine)
            result.tasks.extend(materialize(routine, now))

    return result


def completion_for_instance(
    tasks: Iterable[Task],
    routine: Routine,
    routine_instance_id: str,
    completed_at: datetime,
) -> Optional[RoutineCompletion]:
    """Completion record once every task of the instance is done."""

    instance_tasks = [task for task in tasks if task.routine_instance_id == routine_instance_id]
    if not instance_tasks or any(task.status != STATUS_DONE for task in instance_tasks):
        return None
    return RoutineCompletion(
        routine_id=routine.id,
        routine_instance_id=routine_instance_id,
        completed_at=completed_at,
        task_count=len(instance_tasks),
        routine_name=routine.name,
    )
