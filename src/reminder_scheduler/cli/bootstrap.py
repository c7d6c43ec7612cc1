# src/reminder_scheduler/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the store, the Kafka transport and the core components into ServiceState.
"""

from __future__ import annotations

import logging
from typing import Any

from ..config import get_settings
from ..connectors.kafka_bus import KafkaEventSource, KafkaPublisher
from ..core.state import ServiceState
from ..tasks.coordinator import LifecycleCoordinator
from ..tasks.notifier import NotificationDispatcher
from ..tasks.task_scheduler import DueTaskScanner
from ..tasks.task_store import TaskStore
from ..tasks.trigger import TriggerPath

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_service_state(*, settings=None, publisher: Any = None, source: Any = None) -> ServiceState:
    """
    Create ServiceState from the provided settings.

    Keeping settings and transports injectable makes the service easy to test
    and avoids hidden global config reads. If settings is None, falls back to
    get_settings(); missing transports default to Kafka.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if publisher is None:
        publisher = KafkaPublisher(
            brokers=settings.kafka_brokers,
            task_topic=settings.kafka_task_topic,
            notification_topic=settings.kafka_notification_topic,
        )
    if source is None:
        source = KafkaEventSource(
            brokers=settings.kafka_brokers,
            topic=settings.kafka_task_topic,
            group_id=settings.kafka_group_id,
            offset_reset=settings.kafka_offset_reset,
        )

    task_store = TaskStore(settings.tasks_db_path)
    dispatcher = NotificationDispatcher(publisher, log=logging.getLogger("reminder_scheduler.notifier"))
    trigger = TriggerPath(task_store, dispatcher, log=logging.getLogger("reminder_scheduler.trigger"))
    coordinator = LifecycleCoordinator(
        task_store,
        trigger,
        log=logging.getLogger("reminder_scheduler.coordinator"),
    )
    scanner = DueTaskScanner(
        task_store,
        trigger,
        interval_seconds=settings.scan_interval_seconds,
        batch_limit=settings.scan_batch_limit,
        log=logging.getLogger("reminder_scheduler.scanner"),
    )

    return ServiceState(
        settings=settings,
        task_store=task_store,
        publisher=publisher,
        source=source,
        dispatcher=dispatcher,
        trigger=trigger,
        coordinator=coordinator,
        scanner=scanner,
    )
