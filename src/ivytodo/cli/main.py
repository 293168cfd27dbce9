# src/ivytodo/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, starts the background loop (focus timer ticks,
reminder dispatcher), then runs the console REPL in the main thread.
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state, shutdown_state
from ..config import get_settings
from ..connectors.background import start_background
from ..connectors.console_connector import console_notify, run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_file = setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s (log file %s)...", settings.app_name, log_file)

    state = create_initial_state(settings=settings)

    runner = start_background(state, console_notify)
    if runner is not None:
        state.runtime = runner
        state.tick_scheduler = runner.loop

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGTERM, _handle_signal)
    except (ValueError, OSError):
        # Not supported on every platform / thread.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running reminders only. Press Ctrl+C to stop.")
            try:
                stop_main.wait()
            except KeyboardInterrupt:
                pass

    finally:
        if runner is not None:
            runner.stop()
            runner.join(timeout=10.0)

        shutdown_state(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
