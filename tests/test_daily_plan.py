# tests/test_daily_plan.py

from __future__ import annotations

import dataclasses

import pytest

from ivytodo.core.errors import CapacityError
from ivytodo.planning.daily_plan import MAX_PLAN_SIZE, DailyPlanManager
from ivytodo.tasks.task_store import TaskStore

from .fakes import FakeClock, make_task


def _add(store: TaskStore, n: int) -> list:
    return [store.get_by_id(store.insert(make_task(title=f"t{i}"))) for i in range(n)]


def _plan(store: TaskStore, day: str) -> list[tuple[int, int | None]]:
    return [(t.id, t.ivy_rank) for t in store.get_by_plan_date(day)]


def _assert_dense(store: TaskStore, day: str) -> None:
    ranks = [t.ivy_rank for t in store.get_by_plan_date(day)]
    assert ranks == list(range(1, len(ranks) + 1))
    assert len(ranks) <= MAX_PLAN_SIZE


def test_date_keys_follow_local_calendar(store: TaskStore, clock: FakeClock) -> None:
    mgr = DailyPlanManager(store, clock)
    assert mgr.today_key() == "2024-01-01"
    assert mgr.tomorrow_key() == "2024-01-02"

    clock.advance(12 * 3600 - 1)  # 23:59:59
    assert mgr.tomorrow_key() == "2024-01-02"


def test_set_plan_replaces_previous_members(store: TaskStore, clock: FakeClock) -> None:
    t1, t2, t3 = _add(store, 3)
    mgr = DailyPlanManager(store, clock)
    mgr.set_plan("2024-01-02", [t1, t2])
    assert _plan(store, "2024-01-02") == [(t1.id, 1), (t2.id, 2)]

    result = mgr.set_plan("2024-01-02", [t3, t1])

    assert [(t.id, t.ivy_rank) for t in result] == [(t3.id, 1), (t1.id, 2)]
    demoted = store.get_by_id(t2.id)
    assert demoted.ivy_date is None
    assert demoted.ivy_rank is None
    _assert_dense(store, "2024-01-02")


def test_set_plan_rejects_more_than_six_without_writing(store: TaskStore, clock: FakeClock) -> None:
    tasks = _add(store, 7)
    mgr = DailyPlanManager(store, clock)
    mgr.set_plan("2024-01-02", tasks[:2])

    with pytest.raises(CapacityError):
        mgr.set_plan("2024-01-02", tasks)

    assert _plan(store, "2024-01-02") == [(tasks[0].id, 1), (tasks[1].id, 2)]


def test_duplicates_collapse_to_first_occurrence(store: TaskStore, clock: FakeClock) -> None:
    tasks = _add(store, 6)
    mgr = DailyPlanManager(store, clock)
    picked = [tasks[2], tasks[0], tasks[2], *tasks[1:]]

    mgr.set_plan("2024-01-02", picked)

    assert [tid for tid, _ in _plan(store, "2024-01-02")] == [
        tasks[2].id,
        tasks[0].id,
        tasks[1].id,
        tasks[3].id,
        tasks[4].id,
        tasks[5].id,
    ]
    _assert_dense(store, "2024-01-02")


def test_plan_keeps_other_fields_fresh(store: TaskStore, clock: FakeClock) -> None:
    (t,) = _add(store, 1)
    stale = dataclasses.replace(t)
    store.update(dataclasses.replace(t, is_done=True, note="edited"))

    DailyPlanManager(store, clock).set_plan("2024-01-02", [stale])

    got = store.get_by_id(t.id)
    assert got.is_done
    assert got.note == "edited"
    assert got.ivy_rank == 1


def test_deleted_task_is_skipped(store: TaskStore, clock: FakeClock) -> None:
    a, b = _add(store, 2)
    store.delete(a)
    plan = DailyPlanManager(store, clock).set_plan("2024-01-02", [a, b])
    assert [(t.id, t.ivy_rank) for t in plan] == [(b.id, 1)]


def test_remove_from_plan_is_idempotent_and_keeps_ranks_dense(store: TaskStore, clock: FakeClock) -> None:
    a, b, c = _add(store, 3)
    mgr = DailyPlanManager(store, clock)
    mgr.set_plan("2024-01-02", [a, b, c])

    mgr.remove_from_plan(b)
    mgr.remove_from_plan(b)

    assert _plan(store, "2024-01-02") == [(a.id, 1), (c.id, 2)]
    assert store.get_by_id(b.id).ivy_date is None

    mgr.remove_from_plan(make_task(9999))  # unknown id: no-op


def test_today_plan_and_tomorrow(store: TaskStore, clock: FakeClock) -> None:
    a, b, c = _add(store, 3)
    mgr = DailyPlanManager(store, clock)
    assert mgr.today_plan == []

    mgr.set_plan("2024-01-01", [b, a])
    assert [t.id for t in mgr.today_plan] == [b.id, a.id]

    mgr.plan_tomorrow([c])
    assert [t.id for t in mgr.get_tomorrow_plan()] == [c.id]

    # The next day, yesterday's "tomorrow" is today's plan.
    clock.advance(24 * 3600)
    fresh = DailyPlanManager(store, clock)
    assert [t.id for t in fresh.today_plan] == [c.id]


def test_candidates_are_open_tasks(store: TaskStore, clock: FakeClock) -> None:
    a, b = _add(store, 2)
    store.update(dataclasses.replace(b, is_done=True))
    assert [t.id for t in DailyPlanManager(store, clock).candidates()] == [a.id]


def test_moving_a_task_to_another_date_keeps_both_dense(store: TaskStore, clock: FakeClock) -> None:
    a, b, c, d = _add(store, 4)
    mgr = DailyPlanManager(store, clock)
    mgr.set_plan("2024-01-02", [a, b, c])
    mgr.set_plan("2024-01-03", [d])

    mgr.set_plan("2024-01-03", [a, d])

    assert _plan(store, "2024-01-02") == [(b.id, 1), (c.id, 2)]
    assert _plan(store, "2024-01-03") == [(a.id, 1), (d.id, 2)]
    _assert_dense(store, "2024-01-02")
    _assert_dense(store, "2024-01-03")


def test_emptying_a_source_date_by_moving_its_only_task(store: TaskStore, clock: FakeClock) -> None:
    (a,) = _add(store, 1)
    mgr = DailyPlanManager(store, clock)
    mgr.set_plan("2024-01-01", [a])
    assert [t.id for t in mgr.today_plan] == [a.id]

    mgr.plan_tomorrow([a])

    assert _plan(store, "2024-01-01") == []
    assert mgr.today_plan == []
    assert _plan(store, "2024-01-02") == [(a.id, 1)]
