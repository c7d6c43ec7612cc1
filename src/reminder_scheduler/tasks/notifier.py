# src/reminder_scheduler/tasks/notifier.py

from __future__ import annotations

import logging

from ..core.ports import NotificationPublisher
from .task_models import NotificationRequest, Task

logger = logging.getLogger(__name__)


def build_notification(task: Task) -> NotificationRequest:
    """
    Convert a stored Task into an outbound reminder.

    The recipient stays empty: it is filled in downstream from the user
    directory, keyed by the task owner.
    """
    description = (task.description or "").strip()
    return NotificationRequest(
        to="",
        subject=f"Expense Reminder: {task.title}",
        body=(
            f"Don't forget to record your {task.category} expense "
            f"of ${task.amount:.2f} for {description}"
        ),
        task_id=task.id,
    )


class NotificationDispatcher:
    """
    Hands notification requests to the bus.

    Fire-and-forget: no retries here, a failed publish is logged and reported
    as False so the caller can carry on.
    """

    def __init__(self, publisher: NotificationPublisher, *, log: logging.Logger | None = None) -> None:
        self._publisher = publisher
        self._log = log or logger

    async def dispatch(self, task: Task) -> bool:
        notification = build_notification(task)
        try:
            await self._publisher.publish_notification(notification)
        except Exception:
            self._log.exception("notification publish failed task_id=%s", task.id)
            return False
        self._log.info("Notification queued task_id=%s user_id=%s", task.id, task.user_id)
        return True
