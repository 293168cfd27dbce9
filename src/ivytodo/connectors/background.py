# src/ivytodo/connectors/background.py

from __future__ import annotations

"""
Background asyncio runtime.

The console REPL is blocking (input()), while the focus timer countdown and the
reminder dispatcher need a running event loop. This module starts that loop in a
daemon thread and lets the console hand work over to it.
"""

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from ..core.state import AppState
from ..reminders.dispatcher import InMemoryAlarmService, Notify, run_reminder_dispatcher

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class BackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def call(self, fn: Callable[..., T], *args: Any, timeout: float = 5.0) -> T:
        """Run fn(*args) on the loop thread and return its result."""

        async def _invoke() -> T:
            return fn(*args)

        fut = asyncio.run_coroutine_threadsafe(_invoke(), self.loop)
        return fut.result(timeout=timeout)

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Background loop already closed.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


async def _run_background(state: AppState, stop_event: asyncio.Event, notify: Notify) -> None:
    settings = state.settings
    dispatcher: asyncio.Task[None] | None = None

    if isinstance(state.alarms, InMemoryAlarmService) and getattr(settings, "reminders_enabled", True):
        dispatcher = asyncio.create_task(
            run_reminder_dispatcher(
                state.alarms,
                notify,
                state.clock,
                interval_seconds=float(getattr(settings, "reminder_poll_seconds", 15.0)),
            )
        )
        logger.info("Reminder dispatcher started.")

    try:
        await stop_event.wait()
    finally:
        if state.focus is not None:
            state.focus.close()
        if dispatcher is not None:
            dispatcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await dispatcher


def start_background(state: AppState, notify: Notify) -> BackgroundRunner | None:
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_run_background(state, stop_event, notify))
        finally:
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="ivytodo-background", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Background thread did not initialize properly.")
        return None

    logger.info("Background thread started.")
    return BackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
