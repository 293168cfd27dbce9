# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "IVY_APP_NAME": "App display name, also the console prompt (default: ivytodo).",
    "IVY_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Connectors / background services
    "IVY_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
    "IVY_REMINDERS_ENABLED": "Register and fire due-date reminders (true/false, default: true).",
    "IVY_REMINDER_POLL_SECONDS": "How often the reminder dispatcher checks for due alarms (default: 15).",
    # Focus timer defaults (used by `/focus start <id>`)
    "IVY_FOCUS_MINUTES": "Focus phase length in minutes (default: 25).",
    "IVY_BREAK_MINUTES": "Break phase length in minutes (default: 5).",
    "IVY_FOCUS_SETS": "Number of focus sets per session (default: 4).",
    "IVY_FOCUS_TICK_SECONDS": "Countdown tick interval in seconds (default: 1.0).",
    # Paths (gitignored)
    "IVY_DATA_DIR": "Local data directory, also holds ivytodo.log (default: .local/ivytodo).",
    "IVY_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
}
