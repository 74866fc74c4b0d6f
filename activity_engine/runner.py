"""Periodic routine check loop around ``routines.evaluate``."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from datetime import datetime, tzinfo
from typing import Optional, Protocol

from apscheduler.schedulers.background import BackgroundScheduler

from activity_engine.config import CHECK_INTERVAL_SECONDS, LOCAL_TIMEZONE
from activity_engine.durations import utc_now
from activity_engine.routines import EvaluationResult, evaluate
from activity_engine.schema import Routine, SchedulerWatermark, Task

logger = logging.getLogger(__name__)


class RoutineStore(Protocol):
    """Persistence the runner reads from and writes to."""

    def load_watermark(self) -> SchedulerWatermark: ...

    def save_watermark(self, watermark: SchedulerWatermark) -> None: ...

    def load_routines(self) -> Sequence[Routine]: ...

    def load_tasks(self) -> Sequence[Task]: ...

    def add_tasks(self, tasks: Sequence[Task]) -> None: ...


class RoutineRunner:
    """Runs one read-evaluate-persist cycle at a time.

    The watermark is saved only after the new tasks are stored, so a
    failure anywhere in the cycle leaves the window to be checked again
    on the next tick.
    """

    def __init__(
        self,
        store: RoutineStore,
        clock: Callable[[], datetime] = utc_now,
        tz: tzinfo = LOCAL_TIMEZONE,
        on_tasks_created: Optional[Callable[[list[Task]], None]] = None,
    ):
        self.store = store
        self.clock = clock
        self.tz = tz
        self.on_tasks_created = on_tasks_created
        self._lock = threading.Lock()
        self._scheduler: Optional[BackgroundScheduler] = None

    def run_cycle(self) -> Optional[EvaluationResult]:
        if not self._lock.acquire(blocking=False):
            logger.warning("Routine check already in progress, skipping this tick")
            return None

        try:
            now = self.clock()
            watermark = self.store.load_watermark()
            routines = self.store.load_routines()
            tasks = self.store.load_tasks()

            result = evaluate(routines, tasks, watermark, now, self.tz)
            if result.tasks:
                self.store.add_tasks(result.tasks)
            self.store.save_watermark(result.next_watermark)
        except Exception:
            logger.exception("Routine check failed, watermark left unchanged")
            return None
        finally:
            self._lock.release()

        if result.tasks and self.on_tasks_created is not None:
            self.on_tasks_created(result.tasks)
        return result

    def start(self, interval_seconds: int = CHECK_INTERVAL_SECONDS) -> BackgroundScheduler:
        """Check immediately, then every ``interval_seconds``."""

        scheduler = BackgroundScheduler(timezone=self.tz)
        scheduler.add_job(
            self.run_cycle,
            "interval",
            seconds=interval_seconds,
            id="routine-check",
            max_instances=1,
            coalesce=True,
            next_run_time=self.clock(),
        )
        scheduler.start()
        self._scheduler = scheduler
        return scheduler

    def stop(self) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
