"""
Replisync pass scheduling.

Runs a task on a fixed interval or on a cron expression in a background
thread. The sync core itself holds no timers.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from croniter import CroniterBadDateError, croniter

from replisync.core.errors import ConfigurationError
from replisync.core.logging import get_logger

if TYPE_CHECKING:
    from replisync.core.config import CronSchedule, IntervalSchedule

logger = get_logger(__name__)


def local_now() -> datetime:
    """Current local time as an aware datetime."""
    return datetime.now().astimezone()


def next_fire_time(expression: str, after: datetime) -> datetime:
    """First time ``expression`` fires strictly after ``after``."""
    try:
        return croniter(expression, after).get_next(datetime)
    except CroniterBadDateError as e:
        raise ConfigurationError(f"Cron expression never fires: {expression!r}") from e


class Scheduler:
    """Runs a task repeatedly on a background daemon thread."""

    def __init__(
        self,
        schedule: IntervalSchedule | CronSchedule,
        task: Callable[[], object],
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self.schedule = schedule
        self.task = task
        self.clock = clock
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def seconds_until_next(self) -> float:
        if self.schedule.type == "interval":
            return float(self.schedule.every_seconds)
        now = self.clock()
        return max(0.0, (next_fire_time(self.schedule.expression, now) - now).total_seconds())

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="replisync-scheduler", daemon=True)
        self._thread.start()
        logger.info("Scheduler started", schedule=self.schedule.model_dump())

    def cancel(self, timeout: float | None = None) -> None:
        """Stop the loop and wait for the thread to exit."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Scheduler stopped")

    def wait(self) -> None:
        """Block until the scheduler is cancelled."""
        thread = self._thread
        while thread is not None and thread.is_alive():
            thread.join(0.5)

    def _loop(self) -> None:
        while True:
            try:
                delay = self.seconds_until_next()
            except ConfigurationError as e:
                logger.error("Scheduler halted", error=str(e))
                return
            if self._stop.wait(delay):
                return
            try:
                self.task()
            except Exception as e:
                logger.error("Scheduled task failed", error=str(e), error_type=type(e).__name__)
