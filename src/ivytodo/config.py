# src/ivytodo/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Every value has a default, so a bare checkout runs.
- Paths default under a local, gitignored data directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "IVY"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connectors / background services ----
    console_enabled: bool
    reminders_enabled: bool
    reminder_poll_seconds: float

    # ---- Focus timer defaults ----
    focus_minutes: int
    break_minutes: int
    focus_sets: int
    focus_tick_seconds: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "ivytodo") or "ivytodo"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        reminders_enabled = _env_bool(_k("REMINDERS_ENABLED"), True)
        reminder_poll_seconds = max(0.5, _env_float(_k("REMINDER_POLL_SECONDS"), 15.0))

        focus_minutes = max(1, _env_int(_k("FOCUS_MINUTES"), 25))
        break_minutes = max(1, _env_int(_k("BREAK_MINUTES"), 5))
        focus_sets = max(1, _env_int(_k("FOCUS_SETS"), 4))
        focus_tick_seconds = max(0.05, _env_float(_k("FOCUS_TICK_SECONDS"), 1.0))

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/ivytodo"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            reminders_enabled=reminders_enabled,
            reminder_poll_seconds=reminder_poll_seconds,
            focus_minutes=focus_minutes,
            break_minutes=break_minutes,
            focus_sets=focus_sets,
            focus_tick_seconds=focus_tick_seconds,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
