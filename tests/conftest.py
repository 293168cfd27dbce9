# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from ivytodo.cli.bootstrap import create_initial_state, shutdown_state
from ivytodo.core.state import AppState
from ivytodo.tasks.task_store import TaskStore

from .fakes import NOW, FakeClock, FakeTickScheduler, RecordingAlarmService


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="ivytodo-test",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        reminders_enabled=False,
        reminder_poll_seconds=0.01,
        focus_minutes=1,
        break_minutes=1,
        focus_sets=2,
        focus_tick_seconds=1.0,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture()
def store(tmp_path: Path) -> TaskStore:
    return TaskStore(tmp_path / "store.sqlite3")


@pytest.fixture()
def state(settings: SimpleNamespace, clock: FakeClock):
    """
    AppState wired with deterministic fakes.

    NOTE: We keep the real SQLite TaskStore here because its correctness
    is part of what we want to test.
    """
    st: AppState = create_initial_state(settings=settings, clock=clock)
    st.alarms = RecordingAlarmService()
    st.tick_scheduler = FakeTickScheduler(clock)
    yield st
    shutdown_state(st)
