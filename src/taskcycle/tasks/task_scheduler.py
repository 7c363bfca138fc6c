# src/taskcycle/tasks/task_scheduler.py

from __future__ import annotations

"""
Task scheduler.

A small polling loop that, on start and then every interval:
- applies automatic resets through the lifecycle controller,
- evaluates reminder eligibility,
- hands eligible reminders to the dispatcher.

Delivery transport belongs to the dispatcher's sender, not the scheduler.
"""

import asyncio
import logging

from ..notifications.dispatcher import NotificationDispatcher, PermissionCell, PermissionHolder, PermissionState
from .lifecycle import TaskLifecycleController

logger = logging.getLogger(__name__)


async def run_tick(
    controller: TaskLifecycleController,
    dispatcher: NotificationDispatcher | None,
    permission: PermissionState,
) -> PermissionState:
    """One polling pass. Failures are logged; the returned permission is kept by the caller."""
    try:
        await controller.apply_auto_resets()
    except Exception:
        logger.exception("apply_auto_resets failed")

    if dispatcher is None:
        return permission

    try:
        requests = controller.notification_requests()
    except Exception:
        logger.exception("notification evaluation failed")
        return permission

    try:
        return await dispatcher.dispatch(requests, permission)
    except Exception:
        logger.exception("notification dispatch failed")
        return permission


async def run_task_scheduler(
        controller: TaskLifecycleController,
        dispatcher: NotificationDispatcher | None,
        *,
        interval_seconds: float = 1800.0,
        holder: PermissionHolder | None = None,
) -> None:
    """
    Simple polling scheduler.

    Runs one tick immediately, then one every interval_seconds. Pass
    dispatcher=None (notifications disabled) to only run resets.

    The permission is read from and written back to `holder` on every tick
    (AppState in the CLI), so commands and the loop see the same value.

    To stop the scheduler, cancel the coroutine/task.
    """
    sleep_s = max(0.5, float(interval_seconds))
    if holder is None:
        holder = PermissionCell()

    while True:
        holder.permission = await run_tick(controller, dispatcher, holder.permission)
        await asyncio.sleep(sleep_s)
