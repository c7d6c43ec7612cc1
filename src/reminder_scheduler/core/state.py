# src/reminder_scheduler/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..tasks.coordinator import LifecycleCoordinator
from ..tasks.notifier import NotificationDispatcher
from ..tasks.task_scheduler import DueTaskScanner
from ..tasks.task_store import TaskStore
from ..tasks.trigger import TriggerPath


@dataclass
class ServiceState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    task_store: TaskStore
    publisher: Any  # EventPublisher + NotificationPublisher, with start()/stop()
    source: Any  # EventSource, with start()/stop()

    dispatcher: NotificationDispatcher
    trigger: TriggerPath
    coordinator: LifecycleCoordinator
    scanner: DueTaskScanner
