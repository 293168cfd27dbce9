# src/ivytodo/focus/timer.py

from __future__ import annotations

"""
Pomodoro focus timer.

State machine:

    IDLE --start--> FOCUS --zero--> BREAK --zero--> FOCUS ... --zero on last set--> IDLE
    any  --stop---> IDLE

The countdown is driven by a TickScheduler (an asyncio event loop in production).
There is never more than one pending tick: every start/resume/phase change cancels
the previous handle before scheduling the next one.

Each phase boundary produces exactly one PhaseAlert. Alerts are pushed to alert
listeners and queued for drain_alerts(); `last_alert_at` is kept for callers that
poll a timestamp instead.

All methods must be called from the scheduler's thread.
"""

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from ..core.errors import ValidationError
from ..core.ports import Clock, TaskRepo, TickScheduler, TimerHandle, Unsubscribe

logger = logging.getLogger(__name__)

ALERT_WINDOW_SECONDS = 0.5
UNKNOWN_TASK_TITLE = "Unknown Task"


class FocusPhase(StrEnum):
    IDLE = "idle"
    FOCUS = "focus"
    BREAK = "break"


@dataclass(slots=True, frozen=True)
class FocusSnapshot:
    task_title: str
    phase: FocusPhase
    remaining_ms: int
    current_set: int
    total_sets: int
    is_running: bool
    is_paused: bool
    last_alert_at: float


@dataclass(slots=True, frozen=True)
class PhaseAlert:
    finished: FocusPhase
    next_phase: FocusPhase
    set_index: int
    at: float


SnapshotListener = Callable[[FocusSnapshot], None]
AlertListener = Callable[[PhaseAlert], None]


class FocusTimer:
    def __init__(
        self,
        scheduler: TickScheduler,
        clock: Clock,
        *,
        task_title: str = "",
        tick_ms: int = 1000,
    ) -> None:
        if tick_ms <= 0:
            raise ValidationError("tick_ms must be positive")

        self._scheduler = scheduler
        self._clock = clock
        self._tick_ms = int(tick_ms)
        self.task_title = task_title

        self._phase = FocusPhase.IDLE
        self._remaining_ms = 0
        self._current_set = 1
        self._total_sets = 1
        self._is_running = False
        self._is_paused = False
        self._focus_ms = 0
        self._break_ms = 0

        self._handle: TimerHandle | None = None
        self._last_alert_at = 0.0
        self._alerts: deque[PhaseAlert] = deque()
        self._listeners: list[SnapshotListener] = []
        self._alert_listeners: list[AlertListener] = []

    @classmethod
    def for_task(
        cls,
        store: TaskRepo,
        task_id: int,
        scheduler: TickScheduler,
        clock: Clock,
        *,
        tick_ms: int = 1000,
    ) -> FocusTimer:
        task = store.get_by_id(task_id)
        title = task.title if task is not None else UNKNOWN_TASK_TITLE
        return cls(scheduler, clock, task_title=title, tick_ms=tick_ms)

    # ---- observation ----

    @property
    def snapshot(self) -> FocusSnapshot:
        return FocusSnapshot(
            task_title=self.task_title,
            phase=self._phase,
            remaining_ms=self._remaining_ms,
            current_set=self._current_set,
            total_sets=self._total_sets,
            is_running=self._is_running,
            is_paused=self._is_paused,
            last_alert_at=self._last_alert_at,
        )

    @property
    def phase(self) -> FocusPhase:
        return self._phase

    def subscribe(self, listener: SnapshotListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def on_alert(self, listener: AlertListener) -> Unsubscribe:
        self._alert_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._alert_listeners:
                self._alert_listeners.remove(listener)

        return unsubscribe

    def drain_alerts(self) -> list[PhaseAlert]:
        """Return and forget every alert not consumed yet, oldest first."""
        out = list(self._alerts)
        self._alerts.clear()
        return out

    def alert_pending(self, now: float | None = None, window: float = ALERT_WINDOW_SECONDS) -> bool:
        """Level-triggered view: True while the last phase boundary is younger than `window`."""
        if self._last_alert_at <= 0:
            return False
        now = self._clock.now() if now is None else now
        return 0 <= now - self._last_alert_at <= window

    # ---- transitions ----

    def start(self, focus_minutes: float, break_minutes: float, total_sets: int) -> None:
        if focus_minutes <= 0 or break_minutes <= 0:
            raise ValidationError("focus and break durations must be positive")
        if total_sets < 1:
            raise ValidationError("total_sets must be at least 1")

        self._focus_ms = int(focus_minutes * 60_000)
        self._break_ms = int(break_minutes * 60_000)
        self._phase = FocusPhase.FOCUS
        self._remaining_ms = self._focus_ms
        self._current_set = 1
        self._total_sets = int(total_sets)
        self._is_running = True
        self._is_paused = False

        logger.info(
            "Focus started title=%r focus_ms=%s break_ms=%s sets=%s",
            self.task_title,
            self._focus_ms,
            self._break_ms,
            self._total_sets,
        )
        self._publish()
        self._schedule_tick()

    def pause(self) -> None:
        if self._phase is FocusPhase.IDLE or self._is_paused:
            logger.debug("pause ignored phase=%s paused=%s", self._phase, self._is_paused)
            return
        self._cancel_tick()
        self._is_paused = True
        self._publish()

    def resume(self) -> None:
        if not self._is_paused or self._phase is FocusPhase.IDLE:
            logger.debug("resume ignored phase=%s paused=%s", self._phase, self._is_paused)
            return
        self._is_paused = False
        self._publish()
        self._schedule_tick()

    def stop(self) -> None:
        self._cancel_tick()
        was = self._phase
        self._phase = FocusPhase.IDLE
        self._is_running = False
        self._is_paused = False
        if was is not FocusPhase.IDLE:
            logger.info("Focus stopped during %s (set %s/%s)", was, self._current_set, self._total_sets)
        self._publish()

    def close(self) -> None:
        """Owner teardown: stop and drop every listener."""
        self.stop()
        self._listeners.clear()
        self._alert_listeners.clear()

    def tick(self) -> None:
        """Advance the countdown by one tick. Invoked by the scheduled callback."""
        self._handle = None
        if self._phase is FocusPhase.IDLE or self._is_paused:
            return

        self._remaining_ms = max(0, self._remaining_ms - self._tick_ms)
        if self._remaining_ms > 0:
            self._publish()
            self._schedule_tick()
            return

        self._finish_phase()

    # ---- internals ----

    def _finish_phase(self) -> None:
        finished = self._phase

        if finished is FocusPhase.FOCUS and self._current_set >= self._total_sets:
            self._alert(finished, FocusPhase.IDLE)
            logger.info("Focus session complete title=%r sets=%s", self.task_title, self._total_sets)
            self.stop()
            return

        if finished is FocusPhase.FOCUS:
            self._alert(finished, FocusPhase.BREAK)
            self._phase = FocusPhase.BREAK
            self._remaining_ms = self._break_ms
        else:
            self._alert(finished, FocusPhase.FOCUS)
            self._phase = FocusPhase.FOCUS
            self._current_set += 1
            self._remaining_ms = self._focus_ms

        logger.debug("Focus phase -> %s set=%s/%s", self._phase, self._current_set, self._total_sets)
        self._publish()
        self._schedule_tick()

    def _alert(self, finished: FocusPhase, next_phase: FocusPhase) -> None:
        self._last_alert_at = max(self._last_alert_at, self._clock.now())
        alert = PhaseAlert(
            finished=finished,
            next_phase=next_phase,
            set_index=self._current_set,
            at=self._last_alert_at,
        )
        self._alerts.append(alert)
        for listener in list(self._alert_listeners):
            try:
                listener(alert)
            except Exception:
                logger.exception("Focus alert listener failed")

    def _schedule_tick(self) -> None:
        self._cancel_tick()
        delay_ms = min(self._tick_ms, self._remaining_ms) if self._remaining_ms > 0 else self._tick_ms
        self._handle = self._scheduler.call_later(delay_ms / 1000.0, self.tick)

    def _cancel_tick(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()

    def _publish(self) -> None:
        snap = self.snapshot
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("Focus snapshot listener failed")
