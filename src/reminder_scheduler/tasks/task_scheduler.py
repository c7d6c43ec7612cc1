# src/reminder_scheduler/tasks/task_scheduler.py

from __future__ import annotations

"""
Due-task scanner.

A fixed-period loop that:
- fetches active tasks whose next_run has elapsed,
- fires each through the shared fire path with the tick's instant,
- logs per-task failures and carries on with the rest of the tick.

Ticks never overlap: a tick that is still running when the next one is due
causes that next tick to be skipped. Overdue tasks fire once per scan; missed
occurrences in between are not backfilled.

To stop the scanner, set the stop event (the in-flight tick completes) or
cancel the coroutine/task.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum

from ..core.ports import TaskRepo
from .errors import SchedulerError
from .schedule import as_utc, utcnow
from .trigger import TriggerPath

logger = logging.getLogger(__name__)


class ScannerState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"


class DueTaskScanner:
    def __init__(
        self,
        repo: TaskRepo,
        trigger: TriggerPath,
        *,
        interval_seconds: float = 60.0,
        batch_limit: int = 500,
        clock: Callable[[], datetime] = utcnow,
        log: logging.Logger | None = None,
    ) -> None:
        self._repo = repo
        self._trigger = trigger
        self._interval = max(0.01, float(interval_seconds))
        self._batch_limit = max(1, int(batch_limit))
        self._clock = clock
        self._log = log or logger
        self._state = ScannerState.IDLE
        self.skipped_ticks = 0

    @property
    def state(self) -> ScannerState:
        return self._state

    async def scan_once(self, now: datetime | None = None) -> int:
        """
        Run one tick. Returns the number of tasks fired.

        Every due task is fired with the tick instant, not its own next_run.
        Returns 0 without doing anything if a tick is already running.
        """
        if self._state is ScannerState.SCANNING:
            self.skipped_ticks += 1
            self._log.warning("Scan still running; skipping tick")
            return 0

        self._state = ScannerState.SCANNING
        try:
            tick = as_utc(now) if now is not None else self._clock()

            try:
                due = self._repo.list_due_tasks(now=tick, limit=self._batch_limit)
            except Exception:
                self._log.exception("list_due_tasks failed")
                return 0

            if due:
                self._log.debug("Scan at %s: %d due task(s)", tick, len(due))

            fired = 0
            for task in due:
                try:
                    if await self._trigger.fire(task.id, tick, expected_next_run=task.next_run):
                        fired += 1
                except SchedulerError as e:
                    self._log.warning("Failed to trigger task %s: %s", task.id, e)
                except Exception:
                    self._log.exception("Failed to trigger task %s", task.id)
            return fired
        finally:
            self._state = ScannerState.IDLE

    async def run(self, *, stop: asyncio.Event | None = None) -> None:
        """
        Tick every interval until `stop` is set.

        The first tick happens one interval after start. If a tick overruns,
        the ticks it overlapped are skipped rather than queued.
        """
        stop = stop or asyncio.Event()
        loop = asyncio.get_running_loop()
        next_at = loop.time() + self._interval
        self._log.info("Due-task scanner started (interval=%.1fs)", self._interval)

        while not stop.is_set():
            delay = max(0.0, next_at - loop.time())
            try:
                await asyncio.wait_for(stop.wait(), timeout=delay)
                break
            except TimeoutError:
                pass

            await self.scan_once()

            next_at += self._interval
            behind = loop.time() - next_at
            if behind >= 0:
                missed = int(behind // self._interval) + 1
                self.skipped_ticks += missed
                self._log.warning("Scan overran; skipping %d tick(s)", missed)
                next_at += missed * self._interval

        self._log.info("Due-task scanner stopped")
