# src/ivytodo/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "ivytodo.log"

# Loggers that run on every timer tick or reminder poll.
_CHATTY_PREFIXES = ("ivytodo.focus.", "ivytodo.reminders.")


class _ConsoleNoiseFilter(logging.Filter):
    """Keep the REPL readable: own logs pass, tick/poll chatter and foreign libraries need WARNING/ERROR."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith(_CHATTY_PREFIXES):
            return record.levelno >= logging.WARNING
        if name.startswith("ivytodo."):
            return True
        # py.warnings and third-party loggers
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/ivytodo",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Install a filtered stderr handler and a full-detail file handler on the root logger.

    Returns the log file path. Existing root handlers are replaced, so calling it twice
    does not duplicate output.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file
