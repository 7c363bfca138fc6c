# src/taskcycle/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The scheduling core depends on Protocols instead of concrete implementations,
so the clock, the persistence backend and the notification transport can be
swapped freely (and faked in tests).
"""

from datetime import datetime
from typing import TYPE_CHECKING, Awaitable, Protocol

if TYPE_CHECKING:
    from ..notifications.dispatcher import PermissionState
    from ..notifications.notification_scheduler import NotificationRequest
    from ..tasks.task_models import TaskCollection


class Clock(Protocol):
    def now(self) -> datetime: ...


class StateRepo(Protocol):
    """Snapshot load / whole-document save of a household's task collection."""

    def load(self) -> Awaitable[TaskCollection]: ...
    def save(self, collection: TaskCollection) -> Awaitable[None]: ...


class NotificationSender(Protocol):
    """
    Transport-side port: how the dispatcher delivers a reminder.

    The sender decides what "permission" means for its transport (an OS prompt,
    a configured chat room, ...). It never decides *whether* to notify.
    """

    def request_permission(self) -> Awaitable[PermissionState]: ...
    def deliver(self, request: NotificationRequest) -> Awaitable[None]: ...
