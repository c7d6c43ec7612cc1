# tests/test_main.py

from __future__ import annotations

import asyncio
import json

import pytest

from reminder_scheduler.cli.bootstrap import create_service_state
from reminder_scheduler.cli.main import serve
from reminder_scheduler.connectors.kafka_bus import KafkaEventSource, KafkaPublisher

from .fakes import FakeBus, FakeEventSource


def test_bootstrap_defaults_to_kafka_transports(settings) -> None:
    state = create_service_state(settings=settings)

    assert isinstance(state.publisher, KafkaPublisher)
    assert isinstance(state.source, KafkaEventSource)
    assert settings.tasks_db_path.exists()


@pytest.mark.asyncio
async def test_serve_consumes_scans_and_shuts_down(settings) -> None:
    bus = FakeBus()
    create = {
        "type": "create",
        "task_id": "t1",
        "user_id": "u1",
        "data": {"title": "Coffee", "schedule": "* * * * *", "amount": 3},
    }
    source = FakeEventSource([json.dumps(create).encode()], block_when_empty=True)
    state = create_service_state(settings=settings, publisher=bus, source=source)
    stop = asyncio.Event()

    runner = asyncio.create_task(serve(state, stop))
    await asyncio.sleep(0.05)
    stop.set()
    await asyncio.wait_for(runner, timeout=2)

    assert bus.started and bus.stopped
    assert source.started and source.stopped
    assert source.acks == 1
    assert state.task_store.get_task("t1") is not None


@pytest.mark.asyncio
async def test_serve_with_everything_disabled_idles_until_stopped(settings) -> None:
    settings.scanner_enabled = False
    settings.consumer_enabled = False
    bus = FakeBus()
    source = FakeEventSource()
    state = create_service_state(settings=settings, publisher=bus, source=source)
    stop = asyncio.Event()

    runner = asyncio.create_task(serve(state, stop))
    await asyncio.sleep(0.01)
    stop.set()
    await asyncio.wait_for(runner, timeout=1)

    assert source.started is False
    assert bus.stopped is True
