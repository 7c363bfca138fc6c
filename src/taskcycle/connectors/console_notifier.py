# src/taskcycle/connectors/console_notifier.py

from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import TextIO

from ..notifications.dispatcher import PermissionState
from ..notifications.notification_scheduler import NotificationRequest

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class ConsoleNotifier:
    """NotificationSender that prints reminders to the terminal."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    async def request_permission(self) -> PermissionState:
        # A terminal needs no grant.
        return PermissionState.GRANTED

    async def deliver(self, request: NotificationRequest) -> None:
        stream = self._stream or sys.stdout
        print(f"[{_ts_local()}] [REMINDER] {request.title}\n    {request.body}", file=stream, flush=True)
        logger.debug("Console reminder shown tag=%s", request.dedupe_tag)
