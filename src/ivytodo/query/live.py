# src/ivytodo/query/live.py

from __future__ import annotations

"""
Live task view.

Subscribes to the store's full-table snapshots and keeps the latest view parameters.
Every data change and every parameter change triggers exactly one recompute that
uses the newest snapshot and the newest parameters together. A recompute that was
overtaken by a newer one is dropped instead of published.
"""

import dataclasses
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from ..core.ports import Clock, TaskRepo, Unsubscribe
from ..tasks.task_models import EisenhowerTag, Task
from .engine import Filter, Group, SortMode, ViewParams, compute_view, quadrant_counts

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ViewState:
    params: ViewParams = ViewParams()
    items: list[Task] = field(default_factory=list)
    counts: dict[EisenhowerTag, int] = field(default_factory=dict)


ViewListener = Callable[[ViewState], None]


class LiveTaskView:
    def __init__(self, store: TaskRepo, clock: Clock, params: ViewParams | None = None) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._params = params or ViewParams()
        self._snapshot: list[Task] = []
        self._generation = 0
        self._published = 0
        self._state = ViewState(params=self._params)
        self._listeners: list[ViewListener] = []
        self._unsubscribe: Unsubscribe | None = store.observe_all(self._on_snapshot)

    @property
    def state(self) -> ViewState:
        with self._lock:
            return self._state

    @property
    def params(self) -> ViewParams:
        with self._lock:
            return self._params

    def subscribe(self, listener: ViewListener) -> Unsubscribe:
        with self._lock:
            self._listeners.append(listener)
            current = self._state
        listener(current)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        with self._lock:
            self._listeners.clear()

    # ---- parameter setters ----

    def set_query(self, query: str) -> None:
        self._update_params(query=query)

    def set_filter(self, f: Filter) -> None:
        self._update_params(filter=f)

    def set_sort(self, sort: SortMode) -> None:
        self._update_params(sort=sort)

    def set_group(self, group: Group) -> None:
        self._update_params(group=group)

    def refresh(self) -> None:
        """Recompute with unchanged inputs (e.g. the UPCOMING window moved with the clock)."""
        with self._lock:
            self._generation += 1
            job = (self._generation, self._snapshot, self._params)
        self._run(job)

    # ---- internals ----

    def _update_params(self, **changes: object) -> None:
        with self._lock:
            self._params = dataclasses.replace(self._params, **changes)
            self._generation += 1
            job = (self._generation, self._snapshot, self._params)
        self._run(job)

    def _on_snapshot(self, tasks: list[Task]) -> None:
        with self._lock:
            self._snapshot = list(tasks)
            self._generation += 1
            job = (self._generation, self._snapshot, self._params)
        self._run(job)

    def _run(self, job: tuple[int, list[Task], ViewParams]) -> None:
        generation, snapshot, params = job
        items = compute_view(snapshot, params, self._clock.now())
        state = ViewState(params=params, items=items, counts=quadrant_counts(items))

        with self._lock:
            if generation < self._published:
                logger.debug("Dropping stale view generation=%s published=%s", generation, self._published)
                return
            self._published = generation
            self._state = state
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(state)
            except Exception:
                logger.exception("View listener failed")
