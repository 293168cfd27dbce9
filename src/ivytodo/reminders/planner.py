# src/ivytodo/reminders/planner.py

from __future__ import annotations

from dataclasses import dataclass

from ..tasks.task_models import Task

HOUR = 60 * 60

# (seconds before due, human label); the position is the offset index.
REMINDER_OFFSETS: tuple[tuple[int, str], ...] = (
    (24 * HOUR, "1 day"),
    (12 * HOUR, "12 hours"),
    (1 * HOUR, "1 hour"),
)


@dataclass(slots=True, frozen=True)
class ReminderTrigger:
    alarm_id: int
    task_id: int
    offset_index: int
    fire_at: float
    title: str
    message: str


def alarm_id(task_id: int, offset_index: int) -> int:
    """Stable per-task-per-offset id."""
    return int(task_id) * 10 + int(offset_index)


def plan_reminders(task: Task, now: float) -> list[ReminderTrigger]:
    """
    Alarms that should exist for `task` at time `now`.

    Empty when the task is done, has no due time, or its due time has passed. Otherwise one
    trigger per offset whose instant has not passed yet.
    """
    due = task.due_at
    if task.is_done or due is None or due < now:
        return []

    out: list[ReminderTrigger] = []
    for index, (offset, label) in enumerate(REMINDER_OFFSETS):
        fire_at = due - offset
        if fire_at < now:
            continue
        out.append(
            ReminderTrigger(
                alarm_id=alarm_id(task.id, index),
                task_id=task.id,
                offset_index=index,
                fire_at=fire_at,
                title=f"Reminder: {task.title}",
                message=f"Task is due in {label}",
            )
        )
    return out
