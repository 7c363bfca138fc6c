# src/taskcycle/core/state.py

from __future__ import annotations

from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any, TypeVar

from ..notifications.dispatcher import NotificationDispatcher, PermissionState
from ..tasks.lifecycle import TaskLifecycleController
from .ports import Clock, StateRepo

T = TypeVar("T")

Submit = Callable[[Coroutine[Any, Any, Any]], Any]


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    clock: Clock
    store: StateRepo
    controller: TaskLifecycleController

    # Runs a coroutine on the scheduler's event loop and returns its result.
    # Set once the background runner is up.
    submit: Submit | None = None

    dispatcher: NotificationDispatcher | None = None
    permission: PermissionState = PermissionState.DEFAULT

    def call(self, coro: Coroutine[Any, Any, T]) -> T:
        if self.submit is None:
            coro.close()
            raise RuntimeError("Scheduler loop is not running")
        return self.submit(coro)
