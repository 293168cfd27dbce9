# src/ivytodo/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage, alarm delivery and time sources swappable and makes testing easier.
"""

import time
from collections.abc import Callable
from typing import Any, Protocol

TaskListener = Callable[[list[Any]], None]
Unsubscribe = Callable[[], None]


class Clock(Protocol):
    def now(self) -> float: ...


class SystemClock:
    """Wall clock in epoch seconds."""

    def now(self) -> float:
        return time.time()


class TaskRepo(Protocol):
    # Live read
    def observe_all(self, listener: TaskListener) -> Unsubscribe: ...
    def list_all(self) -> list[Any]: ...

    # CRUD
    def insert(self, task: Any) -> int: ...
    def update(self, task: Any) -> None: ...
    def delete(self, task: Any) -> None: ...
    def get_by_id(self, task_id: int) -> Any | None: ...

    # Planning / calendar queries
    def get_by_plan_date(self, date: str) -> list[Any]: ...
    def get_by_due_range(self, start: float, end: float) -> list[Any]: ...
    def get_distinct_due_dates(self) -> set[str]: ...


class AlarmService(Protocol):
    """
    Alarm delivery port.

    Alarms are addressed by (task_id, offset_index). Registering the same pair twice
    replaces the earlier alarm; cancelling a pair that is not registered is a no-op.
    """

    def register(self, trigger: Any) -> None: ...
    def cancel(self, task_id: int, offset_index: int) -> None: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TickScheduler(Protocol):
    """The subset of asyncio.AbstractEventLoop the focus timer needs."""

    def call_later(self, delay: float, callback: Callable[..., object], *args: Any) -> TimerHandle: ...
