# src/ivytodo/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .ports import AlarmService, Clock, TaskRepo, TickScheduler

if TYPE_CHECKING:
    from ..focus.timer import FocusTimer
    from ..planning.daily_plan import DailyPlanManager
    from ..query.live import LiveTaskView


@dataclass
class AppState:
    """
    Everything a session needs, wired once by the composition root (cli/bootstrap.py).

    Fields are ports where possible so tests can swap in fakes.
    """

    settings: Any
    store: TaskRepo
    clock: Clock
    view: LiveTaskView
    planner: DailyPlanManager
    alarms: AlarmService | None = None

    # Where focus timers schedule their ticks (the background event loop in the app).
    tick_scheduler: TickScheduler | None = None
    # Background runner that owns tick_scheduler; None in tests and one-shot use.
    runtime: Any = None

    # Set while a focus session is owned by this state.
    focus: FocusTimer | None = None
