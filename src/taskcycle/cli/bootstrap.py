# src/taskcycle/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the clock, JSON store and lifecycle controller into AppState,
- picks the notification transport (Matrix room or console).
"""

from __future__ import annotations

import logging
from datetime import timedelta

from ..config import get_settings
from ..connectors.console_notifier import ConsoleNotifier
from ..core.clock import SystemClock
from ..core.ports import NotificationSender
from ..core.state import AppState
from ..notifications.dispatcher import NotificationDispatcher
from ..tasks.lifecycle import TaskLifecycleController
from ..tasks.task_store import JsonTaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    if settings.matrix_enabled:
        settings.matrix_store_path.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    clock = SystemClock(settings.timezone)
    store = JsonTaskStore(settings.data_dir, user_id=settings.user_id, clock=clock)
    controller = TaskLifecycleController(store, clock, tz=settings.timezone)

    return AppState(settings=settings, clock=clock, store=store, controller=controller)


async def create_sender(settings) -> NotificationSender:
    """Matrix room when enabled and reachable, console otherwise. Must run on the scheduler loop."""
    if settings.matrix_enabled:
        from ..connectors.matrix_client import create_matrix_client
        from ..connectors.matrix_notifier import MatrixNotifier

        try:
            client = await create_matrix_client(settings)
        except Exception:
            logger.exception("Matrix client setup failed; falling back to console reminders")
            client = None
        if client is not None:
            return MatrixNotifier(client, settings.matrix_room_id)

    return ConsoleNotifier()


async def create_dispatcher(state: AppState) -> NotificationDispatcher | None:
    settings = state.settings
    if not settings.notifications_enabled:
        logger.info("Notifications disabled; only automatic resets will run")
        return None

    sender = await create_sender(settings)
    return NotificationDispatcher(
        sender,
        state.clock,
        overdue_repeat=timedelta(hours=max(0.0, float(settings.notify_suppress_hours))),
    )
