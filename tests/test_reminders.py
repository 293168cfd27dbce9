# tests/test_reminders.py

from __future__ import annotations

import asyncio

import pytest

from ivytodo.reminders.dispatcher import (
    InMemoryAlarmService,
    run_reminder_dispatcher,
    sync_all_reminders,
    sync_task_reminders,
)
from ivytodo.reminders.planner import ReminderTrigger, alarm_id, plan_reminders

from .fakes import NOW, FakeClock, RecordingAlarmService, make_task

HOUR = 3600.0


def test_due_in_one_hour_gets_only_the_one_hour_trigger() -> None:
    task = make_task(7, title="Pay rent", due_at=NOW + HOUR)

    out = plan_reminders(task, NOW)

    assert len(out) == 1
    (trigger,) = out
    assert trigger.offset_index == 2
    assert trigger.fire_at == pytest.approx(NOW)
    assert trigger.alarm_id == 72
    assert trigger.title == "Reminder: Pay rent"
    assert trigger.message == "Task is due in 1 hour"


def test_far_due_gets_all_three_offsets() -> None:
    task = make_task(3, due_at=NOW + 48 * HOUR)
    out = plan_reminders(task, NOW)
    assert [t.offset_index for t in out] == [0, 1, 2]
    assert [t.fire_at for t in out] == [NOW + 24 * HOUR, NOW + 36 * HOUR, NOW + 47 * HOUR]
    assert [t.alarm_id for t in out] == [30, 31, 32]


def test_thirteen_hours_skips_day_offset() -> None:
    out = plan_reminders(make_task(1, due_at=NOW + 13 * HOUR), NOW)
    assert [t.offset_index for t in out] == [1, 2]


@pytest.mark.parametrize(
    "task",
    [
        make_task(1, due_at=None),
        make_task(1, due_at=NOW + 48 * HOUR, is_done=True),
        make_task(1, due_at=NOW - 1),
    ],
    ids=["no-due", "done", "past"],
)
def test_degenerate_tasks_get_nothing(task) -> None:
    assert plan_reminders(task, NOW) == []


def test_planner_is_idempotent() -> None:
    task = make_task(5, due_at=NOW + 30 * HOUR)
    assert plan_reminders(task, NOW) == plan_reminders(task, NOW)
    assert alarm_id(5, 1) == alarm_id(5, 1) == 51


def test_sync_replaces_and_cancels() -> None:
    alarms = RecordingAlarmService()
    task = make_task(4, due_at=NOW + 48 * HOUR)

    sync_task_reminders(alarms, task, NOW)
    sync_task_reminders(alarms, task, NOW)
    assert sorted(alarms.registered) == [(4, 0), (4, 1), (4, 2)]

    task.is_done = True
    sync_task_reminders(alarms, task, NOW)
    assert alarms.registered == {}
    assert {(4, 0), (4, 1), (4, 2)} <= set(alarms.cancelled)


def test_cancelling_one_offset_leaves_the_others() -> None:
    alarms = InMemoryAlarmService()
    sync_all_reminders(alarms, [make_task(1, due_at=NOW + 48 * HOUR), make_task(2, due_at=NOW + 2 * HOUR)], NOW)
    assert len(alarms.pending()) == 4

    alarms.cancel(1, 1)
    alarms.cancel(1, 1)
    assert sorted((t.task_id, t.offset_index) for t in alarms.pending()) == [(1, 0), (1, 2), (2, 2)]


def test_pop_due_fires_once() -> None:
    alarms = InMemoryAlarmService()
    sync_task_reminders(alarms, make_task(1, due_at=NOW + 2 * HOUR), NOW)

    assert alarms.pop_due(NOW) == []
    fired = alarms.pop_due(NOW + HOUR)
    assert [t.offset_index for t in fired] == [2]
    assert alarms.pop_due(NOW + HOUR) == []


@pytest.mark.asyncio
async def test_dispatcher_notifies_due_alarms(clock: FakeClock) -> None:
    alarms = InMemoryAlarmService()
    sync_task_reminders(alarms, make_task(9, due_at=NOW + 2 * HOUR), NOW)
    clock.advance(HOUR)

    seen: list[ReminderTrigger] = []

    async def notify(trigger: ReminderTrigger) -> None:
        seen.append(trigger)

    runner = asyncio.create_task(run_reminder_dispatcher(alarms, notify, clock, interval_seconds=0.01))
    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert [t.alarm_id for t in seen] == [92]
    assert alarms.pending() == []


@pytest.mark.asyncio
async def test_dispatcher_survives_notify_failure(clock: FakeClock) -> None:
    alarms = InMemoryAlarmService()
    sync_all_reminders(alarms, [make_task(1, due_at=NOW + 2 * HOUR), make_task(2, due_at=NOW + 2 * HOUR)], NOW)
    clock.advance(HOUR)

    seen: list[int] = []

    def notify(trigger: ReminderTrigger) -> None:
        if trigger.task_id == 1:
            raise RuntimeError("display failed")
        seen.append(trigger.task_id)

    runner = asyncio.create_task(run_reminder_dispatcher(alarms, notify, clock, interval_seconds=0.01))
    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert seen == [2]
