# tests/test_focus_timer.py

from __future__ import annotations

import asyncio

import pytest

from ivytodo.core.errors import ValidationError
from ivytodo.focus.timer import FocusPhase, FocusTimer, PhaseAlert, UNKNOWN_TASK_TITLE
from ivytodo.tasks.task_store import TaskStore

from .fakes import FakeClock, FakeTickScheduler, make_task


def _timer(clock: FakeClock) -> tuple[FocusTimer, FakeTickScheduler]:
    sched = FakeTickScheduler(clock)
    return FocusTimer(sched, clock, task_title="Write"), sched


def test_full_session_phases_alerts_and_ticks(clock: FakeClock) -> None:
    timer, sched = _timer(clock)
    phases: list[FocusPhase] = []
    alerts: list[PhaseAlert] = []
    timer.subscribe(lambda s: phases.append(s.phase) if not phases or phases[-1] != s.phase else None)
    timer.on_alert(alerts.append)

    timer.start(1, 1, 2)
    ticks = sched.run_all()

    assert ticks == 180
    assert phases == [FocusPhase.FOCUS, FocusPhase.BREAK, FocusPhase.FOCUS, FocusPhase.IDLE]
    assert [(a.finished, a.next_phase) for a in alerts] == [
        (FocusPhase.FOCUS, FocusPhase.BREAK),
        (FocusPhase.BREAK, FocusPhase.FOCUS),
        (FocusPhase.FOCUS, FocusPhase.IDLE),
    ]
    assert len(timer.drain_alerts()) == 3
    assert timer.drain_alerts() == [], "each alert is consumed once"

    snap = timer.snapshot
    assert snap.phase is FocusPhase.IDLE
    assert not snap.is_running
    assert snap.current_set == 2
    assert sched.live == []


def test_each_tick_emits_remaining(clock: FakeClock) -> None:
    timer, sched = _timer(clock)
    remaining: list[int] = []
    timer.subscribe(lambda s: remaining.append(s.remaining_ms))

    timer.start(1, 1, 1)
    for _ in range(3):
        sched.fire_next()

    assert remaining == [60_000, 59_000, 58_000, 57_000]


def test_pause_then_resume_keeps_remaining(clock: FakeClock) -> None:
    timer, sched = _timer(clock)
    timer.start(1, 1, 1)
    for _ in range(10):
        sched.fire_next()

    timer.pause()
    frozen = timer.snapshot.remaining_ms
    assert timer.snapshot.is_paused
    assert sched.live == []

    timer.resume()
    assert timer.snapshot.remaining_ms == frozen == 50_000
    assert len(sched.live) == 1


def test_only_one_pending_tick(clock: FakeClock) -> None:
    timer, sched = _timer(clock)
    timer.start(1, 1, 2)
    timer.start(1, 1, 2)
    timer.pause()
    timer.resume()
    timer.resume()
    assert len(sched.live) == 1

    timer.start(2, 1, 1)
    assert len(sched.live) == 1
    assert timer.snapshot.remaining_ms == 120_000
    assert timer.snapshot.current_set == 1


def test_invalid_transitions_are_noops(clock: FakeClock) -> None:
    timer, sched = _timer(clock)
    timer.pause()
    timer.resume()
    timer.stop()
    timer.stop()
    assert timer.phase is FocusPhase.IDLE
    assert sched.handles == []

    timer.start(1, 1, 1)
    timer.resume()  # not paused
    assert not timer.snapshot.is_paused


def test_stop_from_break_cancels_countdown(clock: FakeClock) -> None:
    timer, sched = _timer(clock)
    timer.start(1, 1, 3)
    for _ in range(65):
        sched.fire_next()
    assert timer.phase is FocusPhase.BREAK

    timer.stop()
    assert timer.phase is FocusPhase.IDLE
    assert sched.live == []


def test_start_validates_arguments(clock: FakeClock) -> None:
    timer, _ = _timer(clock)
    with pytest.raises(ValidationError):
        timer.start(0, 5, 1)
    with pytest.raises(ValidationError):
        timer.start(25, 5, 0)


def test_alert_pending_window(clock: FakeClock) -> None:
    timer, sched = _timer(clock)
    assert not timer.alert_pending()

    timer.start(1, 1, 2)
    for _ in range(60):
        sched.fire_next()

    assert timer.alert_pending()
    assert timer.snapshot.last_alert_at == clock.now()
    assert not timer.alert_pending(clock.now() + 0.6)


def test_for_task_reads_title(store: TaskStore, clock: FakeClock) -> None:
    task_id = store.insert(make_task(title="Deep work"))
    sched = FakeTickScheduler(clock)
    assert FocusTimer.for_task(store, task_id, sched, clock).task_title == "Deep work"
    assert FocusTimer.for_task(store, 424242, sched, clock).task_title == UNKNOWN_TASK_TITLE


@pytest.mark.asyncio
async def test_runs_on_asyncio_loop(clock: FakeClock) -> None:
    loop = asyncio.get_running_loop()
    done = asyncio.Event()
    timer = FocusTimer(loop, clock, task_title="t", tick_ms=1)
    timer.on_alert(lambda a: done.set() if a.next_phase is FocusPhase.IDLE else None)

    # 0.0005 min = 30 ms focus / break
    timer.start(0.0005, 0.0005, 2)
    await asyncio.wait_for(done.wait(), timeout=5.0)

    assert timer.phase is FocusPhase.IDLE
    assert len(timer.drain_alerts()) == 3
