# src/taskcycle/cli/runner.py

"""
Background scheduler runner.

The console REPL is blocking (input()), so the asyncio side (load, polling
scheduler, notification delivery) lives on its own event loop in a daemon
thread. The console talks to it by submitting coroutines.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any

from ..core.state import AppState
from ..tasks.task_scheduler import run_task_scheduler
from .bootstrap import create_dispatcher

logger = logging.getLogger(__name__)


@dataclass
class SchedulerBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def submit(self, coro: Coroutine[Any, Any, Any], timeout: float | None = 30.0) -> Any:
        fut = asyncio.run_coroutine_threadsafe(coro, self.loop)
        return fut.result(timeout=timeout)

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Failed to signal scheduler stop (loop closed).", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


async def _close_dispatcher(state: AppState) -> None:
    if state.dispatcher is None:
        return
    try:
        await state.dispatcher.close()
    except Exception:
        logger.debug("Notification sender close failed.", exc_info=True)


async def run_scheduler_until(state: AppState, stop_event: asyncio.Event, ready: threading.Event) -> None:
    await state.controller.load()
    state.dispatcher = await create_dispatcher(state)
    ready.set()

    scheduler = asyncio.create_task(
        run_task_scheduler(
            state.controller,
            state.dispatcher,
            interval_seconds=float(state.settings.poll_interval_seconds),
            holder=state,
        )
    )
    try:
        await stop_event.wait()
    finally:
        scheduler.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await scheduler
        await _close_dispatcher(state)
        logger.info("Scheduler stopped.")


def start_scheduler_in_background(state: AppState, *, ready_timeout: float = 30.0) -> SchedulerBackgroundRunner | None:
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event

        try:
            loop.run_until_complete(run_scheduler_until(state, stop_event, ready))
        except Exception:
            holder["failed"] = True
            logger.exception("Scheduler loop crashed")
        finally:
            # Unblock the main thread even when loading failed.
            ready.set()
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="taskcycle-scheduler", daemon=True)
    t.start()

    ready.wait(timeout=ready_timeout)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Scheduler thread did not initialize properly.")
        return None
    if holder.get("failed") or not t.is_alive():
        logger.error("Scheduler thread exited during startup.")
        return None

    runner_handle = SchedulerBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
    state.submit = runner_handle.submit
    logger.info("Scheduler background thread started (interval=%ss).", state.settings.poll_interval_seconds)
    return runner_handle
