# src/taskcycle/connectors/matrix_notifier.py

from __future__ import annotations

import logging
from typing import Any

from nio import RoomSendError

from ..notifications.dispatcher import PermissionState
from ..notifications.notification_scheduler import NotificationRequest

logger = logging.getLogger(__name__)


class MatrixNotifier:
    """
    NotificationSender that posts reminders as m.notice messages to one room.

    "Permission" here means: a client exists and a target room is configured.
    """

    def __init__(self, client: Any | None, room_id: str) -> None:
        self._client = client
        self._room_id = (room_id or "").strip()

    async def request_permission(self) -> PermissionState:
        if self._client is None:
            logger.warning("Matrix client unavailable; reminders to Matrix are disabled")
            return PermissionState.DENIED
        if not self._room_id:
            logger.warning("TASKCYCLE_MATRIX_ROOM_ID is not set; reminders to Matrix are disabled")
            return PermissionState.DENIED
        return PermissionState.GRANTED

    async def deliver(self, request: NotificationRequest) -> None:
        if self._client is None or not self._room_id:
            raise RuntimeError("Matrix notifier is not configured")

        content = {
            "msgtype": "m.notice",
            "body": f"{request.title}\n{request.body}",
        }
        resp = await self._client.room_send(
            room_id=self._room_id,
            message_type="m.room.message",
            content=content,
        )
        if isinstance(resp, RoomSendError):
            raise RuntimeError(f"Matrix room_send failed: {resp.message}")
        logger.debug("Matrix reminder sent tag=%s room=%s", request.dedupe_tag, self._room_id)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
