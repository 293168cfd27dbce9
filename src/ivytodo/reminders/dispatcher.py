# src/ivytodo/reminders/dispatcher.py

from __future__ import annotations

"""
Reminder delivery.

- sync_task_reminders() makes the registered alarms for one task match plan_reminders().
- InMemoryAlarmService keeps alarms keyed by (task_id, offset_index).
- run_reminder_dispatcher() is a small polling loop that fires due alarms once.

How a fired reminder is shown (console line, desktop notification, ...) belongs to the
injected notify callback, not to the dispatcher.
"""

import asyncio
import inspect
import logging
import threading
from collections.abc import Awaitable, Callable, Iterable

from ..core.ports import AlarmService, Clock
from ..tasks.task_models import Task
from .planner import REMINDER_OFFSETS, ReminderTrigger, plan_reminders

logger = logging.getLogger(__name__)

Notify = Callable[[ReminderTrigger], Awaitable[None] | None]


class InMemoryAlarmService:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._alarms: dict[tuple[int, int], ReminderTrigger] = {}

    def register(self, trigger: ReminderTrigger) -> None:
        with self._lock:
            self._alarms[(trigger.task_id, trigger.offset_index)] = trigger

    def cancel(self, task_id: int, offset_index: int) -> None:
        with self._lock:
            self._alarms.pop((int(task_id), int(offset_index)), None)

    def pending(self) -> list[ReminderTrigger]:
        with self._lock:
            return sorted(self._alarms.values(), key=lambda t: (t.fire_at, t.alarm_id))

    def pop_due(self, now: float) -> list[ReminderTrigger]:
        with self._lock:
            due = [t for t in self._alarms.values() if t.fire_at <= now]
            for t in due:
                del self._alarms[(t.task_id, t.offset_index)]
        return sorted(due, key=lambda t: (t.fire_at, t.alarm_id))


def cancel_task_reminders(alarms: AlarmService, task_id: int) -> None:
    for index in range(len(REMINDER_OFFSETS)):
        alarms.cancel(task_id, index)


def sync_task_reminders(alarms: AlarmService, task: Task, now: float) -> list[ReminderTrigger]:
    """Cancel every alarm of `task`, then register the ones that should exist now."""
    cancel_task_reminders(alarms, task.id)
    triggers = plan_reminders(task, now)
    for trigger in triggers:
        alarms.register(trigger)
    if triggers:
        logger.debug("Reminders for task id=%s: %s", task.id, [t.offset_index for t in triggers])
    return triggers


def sync_all_reminders(alarms: AlarmService, tasks: Iterable[Task], now: float) -> int:
    total = 0
    for task in tasks:
        total += len(sync_task_reminders(alarms, task, now))
    return total


async def run_reminder_dispatcher(
        alarms: InMemoryAlarmService,
        notify: Notify,
        clock: Clock,
        *,
        interval_seconds: float = 15.0,
) -> None:
    """
    Simple polling dispatcher.

    Every interval_seconds:
    - pop alarms whose fire_at <= now (each alarm fires once)
    - hand each one to notify(); failures are logged and the alarm is dropped

    To stop the dispatcher, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        for trigger in alarms.pop_due(clock.now()):
            try:
                result = notify(trigger)
                if inspect.isawaitable(result):
                    await result
                logger.info("Reminder fired task_id=%s offset=%s", trigger.task_id, trigger.offset_index)
            except Exception:
                logger.exception("Reminder notify failed task_id=%s offset=%s", trigger.task_id, trigger.offset_index)

        await asyncio.sleep(sleep_s)
