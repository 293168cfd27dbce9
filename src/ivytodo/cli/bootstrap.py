# src/ivytodo/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the store, clock, live view, plan manager and alarm service into AppState,
- owns the explicit shutdown boundary.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import Clock, SystemClock
from ..core.state import AppState
from ..planning.daily_plan import DailyPlanManager
from ..query.live import LiveTaskView
from ..reminders.dispatcher import InMemoryAlarmService, sync_all_reminders
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, clock: Clock | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and clock injectable makes the app easier to test and avoids hidden
    global config reads. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()
    if clock is None:
        clock = SystemClock()

    _ensure_local_dirs(settings)

    store = TaskStore(settings.tasks_db_path)
    alarms = InMemoryAlarmService() if getattr(settings, "reminders_enabled", True) else None

    state = AppState(
        settings=settings,
        store=store,
        clock=clock,
        view=LiveTaskView(store, clock),
        planner=DailyPlanManager(store, clock),
        alarms=alarms,
    )

    if alarms is not None:
        n = sync_all_reminders(alarms, store.list_all(), clock.now())
        logger.info("Registered %d pending reminders.", n)

    return state


def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        if state.focus is not None and state.runtime is None:
            state.focus.close()
    except Exception:
        logger.debug("Focus timer close failed.", exc_info=True)
    state.focus = None

    try:
        state.view.close()
    except Exception:
        logger.debug("Live view close failed.", exc_info=True)

    try:
        close = getattr(state.store, "close", None)
        if close is not None:
            close()
    except Exception:
        logger.debug("Store close failed.", exc_info=True)
