# src/taskcycle/notifications/dispatcher.py

from __future__ import annotations

"""
Notification dispatcher.

Sits between the notification scheduler (what is eligible) and a
NotificationSender (how it is shown). It owns two concerns:
- permission: an explicit PermissionState value passed in and returned, so
  there is no process-wide "has permission" flag;
- repeat suppression, scoped to an eligibility window: a tag is shown once
  and stays suppressed for as long as consecutive ticks keep requesting it.
  When a tick no longer requests it the window has closed and the tag is
  forgotten, so the next window reminds again. Overdue tags are the only
  ones that repeat inside a window, at most once per `overdue_repeat`.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Protocol

from ..core.ports import Clock, NotificationSender
from .notification_scheduler import NotificationRequest

logger = logging.getLogger(__name__)

OVERDUE_TAG_PREFIX = "task-overdue-"


class PermissionState(StrEnum):
    DEFAULT = "default"  # not asked yet
    GRANTED = "granted"
    DENIED = "denied"


class PermissionHolder(Protocol):
    permission: PermissionState


@dataclass
class PermissionCell:
    """Holder for the one permission value shared by the loop and commands."""

    permission: PermissionState = PermissionState.DEFAULT


class NotificationDispatcher:
    def __init__(
        self,
        sender: NotificationSender,
        clock: Clock,
        *,
        overdue_repeat: timedelta = timedelta(hours=6),
    ) -> None:
        self._sender = sender
        self._clock = clock
        self._overdue_repeat = overdue_repeat
        # tag -> when it was last shown, for tags whose window is still open
        self._shown: dict[str, datetime] = {}

    async def ensure_permission(self, permission: PermissionState) -> PermissionState:
        if permission is not PermissionState.DEFAULT:
            return permission
        try:
            granted = await self._sender.request_permission()
        except Exception:
            logger.exception("Notification permission request failed")
            return PermissionState.DEFAULT
        logger.info("Notification permission: %s", granted.value)
        return granted

    def is_suppressed(self, tag: str, now: datetime) -> bool:
        last = self._shown.get(tag)
        if last is None:
            return False
        if tag.startswith(OVERDUE_TAG_PREFIX):
            return now - last < self._overdue_repeat
        return True

    def _close_windows(self, requested: set[str]) -> None:
        closed = [tag for tag in self._shown if tag not in requested]
        for tag in closed:
            del self._shown[tag]
        if closed:
            logger.debug("Eligibility closed for %d tag(s): %s", len(closed), ", ".join(closed))

    async def dispatch(
        self,
        requests: Iterable[NotificationRequest],
        permission: PermissionState,
    ) -> PermissionState:
        """
        Deliver eligible requests. `requests` must be the full set eligible
        at this tick; tags missing from it are treated as closed windows.
        Returns the (possibly updated) permission state for the caller to
        keep and pass back next time.
        """
        pending = list(requests)
        self._close_windows({req.dedupe_tag for req in pending})
        if not pending:
            return permission

        permission = await self.ensure_permission(permission)
        if permission is not PermissionState.GRANTED:
            logger.debug("Notifications not permitted (%s); dropping %d", permission.value, len(pending))
            return permission

        now = self._clock.now()
        sent = 0
        for req in pending:
            if self.is_suppressed(req.dedupe_tag, now):
                continue
            try:
                await self._sender.deliver(req)
            except Exception:
                logger.exception("Notification delivery failed tag=%s", req.dedupe_tag)
                continue
            self._shown[req.dedupe_tag] = now
            logger.info("Reminder sent tag=%s title=%r", req.dedupe_tag, req.title)
            sent += 1

        if sent:
            logger.debug("Delivered %d/%d notification(s)", sent, len(pending))
        return permission

    async def close(self) -> None:
        close = getattr(self._sender, "close", None)
        if close is not None:
            await close()
