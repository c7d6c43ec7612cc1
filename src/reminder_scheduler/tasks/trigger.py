# src/reminder_scheduler/tasks/trigger.py

from __future__ import annotations

"""
Fire path shared by the due-task scanner and explicit trigger events.

Firing a task means:
- check it exists and is active,
- work out the next occurrence from the fire instant,
- claim the fire with a conditional run-window advance in the store,
- only then hand the reminder to the notification dispatcher.

The claim comes before the dispatch so that two concurrent fires for the same
due instant produce at most one notification: the loser of the conditional
write sends nothing. A dispatch failure never rolls the advance back; the next
occurrence is the retry.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from ..core.ports import TaskRepo
from .errors import InactiveError, NotFoundError, ParseError, ScheduleError
from .notifier import NotificationDispatcher
from .schedule import as_utc, next_occurrence, utcnow

logger = logging.getLogger(__name__)


class TriggerPath:
    def __init__(
        self,
        repo: TaskRepo,
        dispatcher: NotificationDispatcher,
        *,
        clock: Callable[[], datetime] = utcnow,
        log: logging.Logger | None = None,
    ) -> None:
        self._repo = repo
        self._dispatcher = dispatcher
        self._clock = clock
        self._log = log or logger

    async def fire(
        self,
        task_id: str,
        fire_instant: datetime,
        *,
        expected_next_run: datetime | None = None,
        requested_at: datetime | None = None,
    ) -> bool:
        """
        Fire one task at `fire_instant`.

        `expected_next_run` is the due instant the caller observed (the scanner
        passes it); if the stored next_run has moved on, another fire already
        handled that instant. `requested_at` is the emission instant of an
        explicit trigger event; a task that already fired at or after it has
        seen this request (redelivery).

        Returns True if this call fired the task, False if it was already
        handled. Raises NotFoundError, InactiveError or ScheduleError.
        """
        fire_instant = as_utc(fire_instant)

        task = self._repo.get_task(task_id)
        if task is None:
            raise NotFoundError(task_id)
        if not task.is_active:
            raise InactiveError(task_id)

        if expected_next_run is not None and task.next_run != as_utc(expected_next_run):
            self._log.info(
                "Task %s already advanced (expected next_run=%s, stored=%s); skipping",
                task_id,
                expected_next_run,
                task.next_run,
            )
            return False

        if requested_at is not None and task.last_run is not None and task.last_run >= as_utc(requested_at):
            self._log.info(
                "Task %s already fired at %s for trigger requested at %s; skipping",
                task_id,
                task.last_run,
                requested_at,
            )
            return False

        try:
            next_run = next_occurrence(task.schedule, fire_instant)
        except ParseError as e:
            raise ScheduleError(task_id, task.schedule, e.reason) from e

        claimed = self._repo.advance_run_window(
            task_id,
            expected_next_run=task.next_run,
            expected_last_run=task.last_run,
            last_run=fire_instant,
            next_run=next_run,
            updated_at=self._clock(),
        )
        if not claimed:
            self._log.info("Task %s fire lost to a concurrent update; skipping", task_id)
            return False

        delivered = await self._dispatcher.dispatch(task)
        self._log.info(
            "Task fired id=%s last_run=%s next_run=%s notified=%s",
            task_id,
            fire_instant,
            next_run,
            delivered,
        )
        return True
