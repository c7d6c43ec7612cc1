# src/reminder_scheduler/tasks/coordinator.py

from __future__ import annotations

"""
Lifecycle coordinator.

Consumes create/update/delete/trigger events and applies them to the task store:
- create: compute next_run from now, insert (a redelivered create overwrites),
- update: recompute next_run from now, overwrite an existing task only,
- delete: hard delete, absent target is fine,
- trigger: go through the shared fire path.

The bus gives no ordering across task ids, so each event is applied on its own
and every handler is safe to run twice.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from ..core.ports import EventSource, TaskRepo
from .errors import EventError, InactiveError, NotFoundError, ParseError, ScheduleError
from .schedule import next_occurrence, utcnow
from .task_models import EventKind, LifecycleEvent, decode_event
from .trigger import TriggerPath

logger = logging.getLogger(__name__)


class LifecycleCoordinator:
    def __init__(
        self,
        repo: TaskRepo,
        trigger: TriggerPath,
        *,
        clock: Callable[[], datetime] = utcnow,
        retry_delay_seconds: float = 1.0,
        log: logging.Logger | None = None,
    ) -> None:
        self._repo = repo
        self._trigger = trigger
        self._clock = clock
        self._retry_delay = max(0.0, float(retry_delay_seconds))
        self._log = log or logger

    # ---- event application ----

    async def apply(self, event: LifecycleEvent) -> bool:
        """
        Apply one decoded event. Returns True if the store changed.

        Raises ParseError (create/update with a bad schedule), NotFoundError /
        InactiveError / ScheduleError (trigger preconditions) and EventError.
        """
        if event.kind is EventKind.CREATE:
            return self._create(event)
        if event.kind is EventKind.UPDATE:
            return self._update(event)
        if event.kind is EventKind.DELETE:
            return self._delete(event)
        if event.kind is EventKind.TRIGGER:
            return await self._trigger.fire(event.task_id, self._clock(), requested_at=event.timestamp)
        raise EventError(f"unknown event type: {event.kind!r}")

    def _create(self, event: LifecycleEvent) -> bool:
        task = event.task
        if task is None:
            raise EventError("create event without task payload")

        now = self._clock()
        task.next_run = next_occurrence(task.schedule, now)
        task.last_run = None
        task.created_at = task.created_at or now
        task.updated_at = now

        self._repo.upsert_task(task)
        self._log.info("Task created id=%s user_id=%s next_run=%s", task.id, task.user_id, task.next_run)
        return True

    def _update(self, event: LifecycleEvent) -> bool:
        task = event.task
        if task is None:
            raise EventError("update event without task payload")

        now = self._clock()
        task.next_run = next_occurrence(task.schedule, now)
        task.created_at = task.created_at or now
        task.updated_at = now

        if not self._repo.update_task(task):
            self._log.warning("Update for unknown task id=%s dropped (lost create?)", task.id)
            return False

        self._log.info("Task updated id=%s next_run=%s active=%s", task.id, task.next_run, task.is_active)
        return True

    def _delete(self, event: LifecycleEvent) -> bool:
        removed = self._repo.delete_task(event.task_id)
        if removed:
            self._log.info("Task deleted id=%s", event.task_id)
        else:
            self._log.debug("Delete for absent task id=%s (already gone)", event.task_id)
        return removed

    # ---- consumption ----

    async def handle_message(self, raw: Any) -> bool:
        """
        Decode and apply one raw bus message.

        Never raises for a bad message or a failed unit of work: the error is
        logged and the message is dropped. Returns True if the store changed.
        """
        try:
            event = decode_event(raw)
        except EventError as e:
            self._log.warning("Dropping malformed lifecycle event: %s", e)
            return False

        try:
            return await self.apply(event)
        except ParseError as e:
            self._log.warning("Rejected %s for task %s: %s", event.kind.value, event.task_id, e)
        except (NotFoundError, InactiveError) as e:
            self._log.warning("Trigger dropped: %s", e)
        except ScheduleError as e:
            self._log.error("Trigger failed, task left unfired: %s", e)
        except EventError as e:
            self._log.warning("Dropping lifecycle event: %s", e)
        except Exception:
            self._log.exception("Failed to apply %s event task_id=%s", event.kind.value, event.task_id)
        return False

    async def run(self, source: EventSource, *, stop: asyncio.Event | None = None) -> None:
        """
        Consume events until the source is exhausted or `stop` is set.

        Waiting on the bus is the only blocking point; once `stop` is set the
        in-flight event is finished before returning. A receive failure is
        logged and the stream reopened, so it never ends the loop.
        """
        stop = stop or asyncio.Event()
        messages = source.messages().__aiter__()
        self._log.info("Lifecycle consumer started")

        while not stop.is_set():
            next_msg = asyncio.ensure_future(messages.__anext__())
            stop_wait = asyncio.ensure_future(stop.wait())
            done, _ = await asyncio.wait({next_msg, stop_wait}, return_when=asyncio.FIRST_COMPLETED)

            if next_msg not in done:
                next_msg.cancel()
                break
            stop_wait.cancel()

            try:
                raw = next_msg.result()
            except StopAsyncIteration:
                break
            except Exception:
                # A generator that raised is finished; reopen the stream after a pause.
                self._log.exception("Event receive failed; reopening in %.1fs", self._retry_delay)
                try:
                    await asyncio.wait_for(stop.wait(), timeout=self._retry_delay)
                except TimeoutError:
                    pass
                messages = source.messages().__aiter__()
                continue

            await self.handle_message(raw)
            try:
                await source.ack()
            except Exception:
                self._log.exception("Event ack failed")

        self._log.info("Lifecycle consumer stopped")
