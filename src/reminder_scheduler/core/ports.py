# src/reminder_scheduler/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the bus and the store swappable and makes testing easier:
tests plug in in-memory fakes, production wires aiokafka + SQLite.
"""

from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any, Awaitable, Protocol


class EventPublisher(Protocol):
    """Publishes lifecycle events (create/update/delete/trigger) keyed by task id."""

    def publish_task_event(self, event: Any) -> Awaitable[None]: ...


class NotificationPublisher(Protocol):
    """Publishes notification requests on a channel distinct from lifecycle events."""

    def publish_notification(self, notification: Any) -> Awaitable[None]: ...


class EventSource(Protocol):
    """
    Consumer-side port: yields raw lifecycle event payloads (bytes/str/dict).

    `ack()` is called after a message has been handled (successfully or not),
    so at-least-once transports can commit their position.
    """

    def messages(self) -> AsyncIterator[Any]: ...
    def ack(self) -> Awaitable[None]: ...


class TaskRepo(Protocol):
    # Lifecycle API
    def upsert_task(self, task: Any) -> None: ...
    def update_task(self, task: Any) -> bool: ...
    def delete_task(self, task_id: str) -> bool: ...
    def get_task(self, task_id: str) -> Any | None: ...

    # Scanner API
    def list_due_tasks(self, *, now: datetime, limit: int = 500) -> list[Any]: ...
    def advance_run_window(
            self,
            task_id: str,
            *,
            expected_next_run: datetime,
            expected_last_run: datetime | None,
            last_run: datetime,
            next_run: datetime,
            updated_at: datetime,
    ) -> bool: ...
