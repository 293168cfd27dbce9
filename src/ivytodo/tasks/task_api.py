# src/ivytodo/tasks/task_api.py

from __future__ import annotations

"""
High-level task operations used by connectors.

Validation happens here, before anything reaches the store. After every write the
task's reminder alarms are re-synced when an alarm service is wired in.
"""

import dataclasses
import logging
from datetime import date, datetime, time, timedelta

from ..core.errors import NotFoundError, ValidationError
from ..core.state import AppState
from ..reminders.dispatcher import cancel_task_reminders, sync_task_reminders
from .task_models import EisenhowerTag, Priority, Recurrence, Task

logger = logging.getLogger(__name__)


def _clean_title(title: str | None) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("title must not be blank")
    return cleaned


def _check_recurrence(recurrence: Recurrence | None) -> None:
    if recurrence is not None and recurrence.interval < 1:
        raise ValidationError("recurrence interval must be >= 1")


def _sync_reminders(state: AppState, task: Task) -> None:
    if state.alarms is None:
        return
    sync_task_reminders(state.alarms, task, state.clock.now())


def add_task(
    state: AppState,
    *,
    title: str,
    note: str = "",
    due_at: float | None = None,
    priority: Priority = Priority.MEDIUM,
    tag: EisenhowerTag = EisenhowerTag.DO_NOW,
    recurrence: Recurrence | None = None,
) -> Task:
    clean = _clean_title(title)
    _check_recurrence(recurrence)

    draft = Task(
        id=0,
        title=clean,
        note=(note or "").strip(),
        is_done=False,
        created_at=state.clock.now(),
        due_at=due_at,
        priority=priority,
        tag=tag,
        recurrence=recurrence,
    )
    task_id = state.store.insert(draft)
    task = dataclasses.replace(draft, id=task_id)
    logger.info("Task added id=%s", task_id)

    _sync_reminders(state, task)
    return task


def update_task(state: AppState, task: Task) -> Task:
    """
    Persist edits to title, note, due, priority, tag, recurrence and done state.

    Plan fields are owned by DailyPlanManager: the stored ivy_date/ivy_rank are kept
    whatever the passed task carries.
    """
    clean = _clean_title(task.title)
    _check_recurrence(task.recurrence)
    current = require_task(state, task.id)

    updated = dataclasses.replace(
        task,
        title=clean,
        note=(task.note or "").strip(),
        ivy_date=current.ivy_date,
        ivy_rank=current.ivy_rank,
    )
    state.store.update(updated)
    _sync_reminders(state, updated)
    return updated


def get_task(state: AppState, task_id: int) -> Task | None:
    return state.store.get_by_id(task_id)


def require_task(state: AppState, task_id: int) -> Task:
    task = state.store.get_by_id(task_id)
    if task is None:
        raise NotFoundError(task_id)
    return task


def toggle_done(state: AppState, task_id: int) -> Task | None:
    task = state.store.get_by_id(task_id)
    if task is None:
        return None
    updated = dataclasses.replace(task, is_done=not task.is_done)
    state.store.update(updated)
    logger.info("Task id=%s done=%s", task_id, updated.is_done)
    _sync_reminders(state, updated)
    return updated


def delete_task(state: AppState, task_id: int) -> bool:
    task = state.store.get_by_id(task_id)
    if task is None:
        return False
    if task.is_planned:
        state.planner.remove_from_plan(task)
    state.store.delete(task)
    if state.alarms is not None:
        cancel_task_reminders(state.alarms, task_id)
    logger.info("Task deleted id=%s", task_id)
    return True


def tasks_for_day(state: AppState, day: date) -> list[Task]:
    """Tasks due on the local calendar `day`, due ascending."""
    start = datetime.combine(day, time.min)
    end = start + timedelta(days=1)
    return state.store.get_by_due_range(start.timestamp(), end.timestamp())


def dates_with_tasks(state: AppState) -> set[str]:
    return state.store.get_distinct_due_dates()
