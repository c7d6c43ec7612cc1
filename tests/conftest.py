# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from reminder_scheduler.tasks.coordinator import LifecycleCoordinator
from reminder_scheduler.tasks.notifier import NotificationDispatcher
from reminder_scheduler.tasks.task_scheduler import DueTaskScanner
from reminder_scheduler.tasks.task_store import TaskStore
from reminder_scheduler.tasks.trigger import TriggerPath

from .fakes import FakeBus, FakeClock, at


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and the core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="reminder-scheduler-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        tasks_db_path=tmp_path / "data" / "tasks.sqlite3",
        kafka_brokers=["localhost:9092"],
        kafka_task_topic="expense-tasks",
        kafka_notification_topic="email-notifications",
        kafka_group_id="test",
        kafka_offset_reset="earliest",
        scanner_enabled=True,
        consumer_enabled=True,
        scan_interval_seconds=0.01,
        scan_batch_limit=50,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(at("2024-01-01T08:00:00Z"))


@pytest.fixture()
def store(tmp_path: Path) -> TaskStore:
    # Real SQLite: the conditional advance is part of what we want to test.
    return TaskStore(tmp_path / "tasks.sqlite3")


@pytest.fixture()
def bus() -> FakeBus:
    return FakeBus()


@pytest.fixture()
def core(store: TaskStore, bus: FakeBus, clock: FakeClock) -> SimpleNamespace:
    """The core components wired over the real store, the fake bus and a fixed clock."""
    dispatcher = NotificationDispatcher(bus)
    trigger = TriggerPath(store, dispatcher, clock=clock)
    return SimpleNamespace(
        store=store,
        bus=bus,
        clock=clock,
        dispatcher=dispatcher,
        trigger=trigger,
        coordinator=LifecycleCoordinator(store, trigger, clock=clock),
        scanner=DueTaskScanner(store, trigger, interval_seconds=0.01, clock=clock),
    )
