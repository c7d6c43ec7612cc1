# src/reminder_scheduler/tasks/task_api.py

from __future__ import annotations

"""
Client-side helpers for emitting lifecycle events.

Command ingestion never touches the store: it publishes events and the
lifecycle coordinator applies them. These helpers stamp ids and timestamps the
same way for every caller.
"""

import logging
import uuid
from datetime import datetime

from ..core.ports import EventPublisher
from .schedule import utcnow, validate
from .task_models import EventKind, LifecycleEvent, Task

logger = logging.getLogger(__name__)


def generate_task_id() -> str:
    return str(uuid.uuid4())


async def publish_create(
    publisher: EventPublisher,
    *,
    user_id: str,
    title: str,
    schedule: str,
    description: str = "",
    amount: float = 0.0,
    category: str = "",
    is_active: bool = True,
    now: datetime | None = None,
) -> Task:
    """
    Validate and publish a create event for a new task. Returns the task as sent
    (its next_run is computed by the coordinator, not here).
    """
    if not user_id or not user_id.strip():
        raise ValueError("user_id is required")
    if not title or not title.strip():
        raise ValueError("title is required")
    validate(schedule)

    now = now or utcnow()
    task = Task(
        id=generate_task_id(),
        user_id=user_id.strip(),
        title=title.strip(),
        schedule=schedule.strip(),
        description=description.strip(),
        amount=float(amount),
        category=category.strip(),
        is_active=is_active,
        created_at=now,
        updated_at=now,
    )
    await publisher.publish_task_event(
        LifecycleEvent(kind=EventKind.CREATE, task_id=task.id, user_id=task.user_id, timestamp=now, task=task)
    )
    logger.info("Create event published task_id=%s user_id=%s", task.id, task.user_id)
    return task


async def publish_update(publisher: EventPublisher, task: Task, *, now: datetime | None = None) -> None:
    if not task.id:
        raise ValueError("task id is required")
    validate(task.schedule)

    now = now or utcnow()
    task.updated_at = now
    await publisher.publish_task_event(
        LifecycleEvent(kind=EventKind.UPDATE, task_id=task.id, user_id=task.user_id, timestamp=now, task=task)
    )
    logger.info("Update event published task_id=%s", task.id)


async def publish_delete(
    publisher: EventPublisher, task_id: str, *, user_id: str = "", now: datetime | None = None
) -> None:
    if not task_id:
        raise ValueError("task id is required")
    await publisher.publish_task_event(
        LifecycleEvent(kind=EventKind.DELETE, task_id=task_id, user_id=user_id, timestamp=now or utcnow())
    )
    logger.info("Delete event published task_id=%s", task_id)


async def publish_trigger(
    publisher: EventPublisher, task_id: str, *, user_id: str = "", now: datetime | None = None
) -> None:
    if not task_id:
        raise ValueError("task id is required")
    await publisher.publish_task_event(
        LifecycleEvent(kind=EventKind.TRIGGER, task_id=task_id, user_id=user_id, timestamp=now or utcnow())
    )
    logger.info("Trigger event published task_id=%s", task_id)
