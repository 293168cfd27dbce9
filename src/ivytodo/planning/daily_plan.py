# src/ivytodo/planning/daily_plan.py

from __future__ import annotations

"""
Ivy Lee daily plan.

A plan is the ordered set of at most six tasks that share an `ivy_date`. Rank is the
1-based position in the plan. The manager keeps three rules true after every
successful write:

- ivy_rank is set if and only if ivy_date is set,
- ranks for one date are exactly 1..N with no gaps or duplicates,
- N <= MAX_PLAN_SIZE.

Known gap: set_plan() reads the existing plan, then writes. A concurrent writer that
changes the same date in between is not detected.
"""

import dataclasses
import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta

from ..core.errors import CapacityError
from ..core.ports import Clock, TaskRepo
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)

MAX_PLAN_SIZE = 6
DATE_FORMAT = "%Y-%m-%d"


def date_key(day: date) -> str:
    return day.strftime(DATE_FORMAT)


class DailyPlanManager:
    def __init__(self, store: TaskRepo, clock: Clock) -> None:
        self._store = store
        self._clock = clock
        self._today_plan: list[Task] = []
        self.refresh_today()

    # ---- dates ----

    def today(self) -> date:
        return datetime.fromtimestamp(self._clock.now()).date()

    def today_key(self) -> str:
        return date_key(self.today())

    def tomorrow_key(self) -> str:
        return date_key(self.today() + timedelta(days=1))

    # ---- reads ----

    @property
    def today_plan(self) -> list[Task]:
        return list(self._today_plan)

    def refresh_today(self) -> list[Task]:
        self._today_plan = self.get_plan_for_date(self.today_key())
        return self.today_plan

    def get_plan_for_date(self, day: str) -> list[Task]:
        tasks = self._store.get_by_plan_date(day)
        # Unranked rows should not exist; keep them last if they do.
        return sorted(tasks, key=lambda t: (t.ivy_rank is None, t.ivy_rank or 0))

    def get_tomorrow_plan(self) -> list[Task]:
        return self.get_plan_for_date(self.tomorrow_key())

    def candidates(self) -> list[Task]:
        """Tasks that may be picked for a plan (everything not done)."""
        return [t for t in self._store.list_all() if not t.is_done]

    # ---- writes ----

    def set_plan(self, day: str, selected: Iterable[Task]) -> list[Task]:
        """
        Make `selected` the plan for `day`, in that order.

        Previous members that are not selected lose their plan fields. Raises
        CapacityError (and writes nothing) when the selection has more than
        MAX_PLAN_SIZE distinct tasks.
        """
        chosen: list[Task] = []
        seen: set[int] = set()
        for t in selected:
            if t.id in seen:
                continue
            seen.add(t.id)
            chosen.append(t)

        if len(chosen) > MAX_PLAN_SIZE:
            raise CapacityError(len(chosen), MAX_PLAN_SIZE)

        existing = self.get_plan_for_date(day)
        for old in existing:
            if old.id not in seen:
                self._store.update(dataclasses.replace(old, ivy_date=None, ivy_rank=None))
                logger.debug("Plan %s: demoted task id=%s", day, old.id)

        rank = 0
        vacated: set[str] = set()
        for t in chosen:
            current = self._store.get_by_id(t.id)
            if current is None:
                logger.warning("Plan %s: task id=%s no longer exists, skipped", day, t.id)
                continue
            if current.ivy_date is not None and current.ivy_date != day:
                vacated.add(current.ivy_date)
            rank += 1
            self._store.update(dataclasses.replace(current, ivy_date=day, ivy_rank=rank))

        for other in sorted(vacated):
            logger.debug("Plan %s: closing ranks after moving tasks to %s", other, day)
            self._compact(other)

        logger.info("Plan %s saved with %s tasks", day, rank)
        self.refresh_today()
        return self.get_plan_for_date(day)

    def plan_tomorrow(self, selected: Iterable[Task]) -> list[Task]:
        return self.set_plan(self.tomorrow_key(), selected)

    def remove_from_plan(self, task: Task) -> None:
        current = self._store.get_by_id(task.id)
        if current is None or (current.ivy_date is None and current.ivy_rank is None):
            return

        day = current.ivy_date
        self._store.update(dataclasses.replace(current, ivy_date=None, ivy_rank=None))
        logger.debug("Plan %s: removed task id=%s", day, task.id)

        if day is not None:
            self._compact(day)

        self.refresh_today()

    def _compact(self, day: str) -> None:
        """Renumber the remaining members of `day` to 1..N, keeping their order."""
        for rank, rest in enumerate(self.get_plan_for_date(day), start=1):
            if rest.ivy_rank != rank:
                self._store.update(dataclasses.replace(rest, ivy_rank=rank))
