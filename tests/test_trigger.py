# tests/test_trigger.py

from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from reminder_scheduler.tasks.errors import InactiveError, NotFoundError, ScheduleError
from reminder_scheduler.tasks.notifier import NotificationDispatcher, build_notification
from reminder_scheduler.tasks.trigger import TriggerPath

from .fakes import FakeBus, StaleReadRepo, at, make_task


@pytest.mark.asyncio
async def test_fire_advances_run_window_and_notifies(core) -> None:
    core.store.upsert_task(make_task())
    before = core.store.get_task("t1")
    core.clock.set(at("2024-01-01T09:01:00Z"))

    fired = await core.trigger.fire("t1", at("2024-01-01T09:01:00Z"))

    assert fired is True
    after = core.store.get_task("t1")
    assert after.last_run == at("2024-01-01T09:01:00Z")
    assert after.next_run == at("2024-01-02T09:00:00Z")
    assert after.updated_at == at("2024-01-01T09:01:00Z")
    # Nothing else changes.
    assert replace(after, last_run=None, next_run=before.next_run, updated_at=before.updated_at) == before

    assert len(core.bus.notifications) == 1
    note = core.bus.notifications[0]
    assert note.task_id == "t1"
    assert note.to == ""
    assert note.subject == "Expense Reminder: Rent"


@pytest.mark.asyncio
async def test_missing_task_raises_not_found(core) -> None:
    with pytest.raises(NotFoundError):
        await core.trigger.fire("nope", at("2024-01-01T09:01:00Z"))
    assert core.bus.notifications == []


@pytest.mark.asyncio
async def test_inactive_task_is_never_fired(core) -> None:
    core.store.upsert_task(make_task(is_active=False))
    before = core.store.get_task("t1")

    with pytest.raises(InactiveError):
        await core.trigger.fire("t1", at("2024-01-01T09:01:00Z"))

    assert core.store.get_task("t1") == before
    assert core.bus.notifications == []


@pytest.mark.asyncio
async def test_corrupted_schedule_leaves_task_unfired(core) -> None:
    core.store.upsert_task(make_task(schedule="99 * * * *"))
    before = core.store.get_task("t1")

    with pytest.raises(ScheduleError):
        await core.trigger.fire("t1", at("2024-01-01T09:01:00Z"))

    assert core.store.get_task("t1") == before
    assert core.bus.notifications == []


@pytest.mark.asyncio
async def test_dispatch_failure_still_advances(core) -> None:
    core.store.upsert_task(make_task())
    core.bus.fail_notifications = True

    fired = await core.trigger.fire("t1", at("2024-01-01T09:01:00Z"))

    assert fired is True
    assert core.store.get_task("t1").next_run == at("2024-01-02T09:00:00Z")
    assert core.bus.notifications == []


@pytest.mark.asyncio
async def test_concurrent_fires_for_same_due_instant_fire_once(core) -> None:
    core.store.upsert_task(make_task())
    due = at("2024-01-01T09:00:00Z")
    tick = at("2024-01-01T09:01:00Z")

    results = await asyncio.gather(
        core.trigger.fire("t1", tick, expected_next_run=due),
        core.trigger.fire("t1", tick, expected_next_run=due),
    )

    assert sorted(results) == [False, True]
    assert len(core.bus.notifications) == 1
    assert core.store.get_task("t1").next_run == at("2024-01-02T09:00:00Z")


@pytest.mark.asyncio
async def test_racing_readers_lose_the_conditional_write() -> None:
    # Both fires read the same (stale) due state; only one may advance and notify.
    repo = StaleReadRepo([make_task()])
    bus = FakeBus()
    trigger = TriggerPath(repo, NotificationDispatcher(bus), clock=lambda: at("2024-01-01T09:01:00Z"))

    results = await asyncio.gather(
        trigger.fire("t1", at("2024-01-01T09:01:00Z")),
        trigger.fire("t1", at("2024-01-01T09:01:00Z")),
    )

    assert sorted(results) == [False, True]
    assert repo.advances == 1
    assert len(bus.notifications) == 1


@pytest.mark.asyncio
async def test_racing_early_triggers_fire_once() -> None:
    # Fired before it is due, the task keeps next_run=09:00; last_run must decide the race.
    repo = StaleReadRepo([make_task()])
    bus = FakeBus()
    trigger = TriggerPath(repo, NotificationDispatcher(bus), clock=lambda: at("2024-01-01T08:30:00Z"))
    requested = at("2024-01-01T08:29:59Z")

    results = await asyncio.gather(
        trigger.fire("t1", at("2024-01-01T08:30:00Z"), requested_at=requested),
        trigger.fire("t1", at("2024-01-01T08:30:00Z"), requested_at=requested),
    )

    assert sorted(results) == [False, True]
    assert repo.advances == 1
    assert len(bus.notifications) == 1
    assert repo.tasks["t1"].next_run == at("2024-01-01T09:00:00Z")


@pytest.mark.asyncio
async def test_redelivered_trigger_request_is_ignored(core) -> None:
    core.store.upsert_task(make_task())
    requested = at("2024-01-01T10:00:00Z")

    first = await core.trigger.fire("t1", at("2024-01-01T10:00:05Z"), requested_at=requested)
    again = await core.trigger.fire("t1", at("2024-01-01T10:00:09Z"), requested_at=requested)
    later = await core.trigger.fire("t1", at("2024-01-01T10:05:00Z"), requested_at=at("2024-01-01T10:04:00Z"))

    assert (first, again, later) == (True, False, True)
    assert len(core.bus.notifications) == 2
    assert core.store.get_task("t1").last_run == at("2024-01-01T10:05:00Z")


def test_notification_body_mentions_category_amount_and_description() -> None:
    note = build_notification(make_task(category="food", amount=7.5, description="lunch"))
    assert note.body == "Don't forget to record your food expense of $7.50 for lunch"
