# tests/test_runner.py

from __future__ import annotations

import time
from datetime import datetime
from types import SimpleNamespace

from taskcycle.cli import bootstrap
from taskcycle.cli.commands import registry
from taskcycle.cli.runner import start_scheduler_in_background
from taskcycle.core.state import AppState
from taskcycle.notifications.dispatcher import PermissionState
from taskcycle.tasks.lifecycle import TaskLifecycleController
from taskcycle.tasks.task_models import Weekly
from taskcycle.tasks.task_store import StoreError

from .fakes import FakeRepo, FakeSender, make_task


class BrokenRepo(FakeRepo):
    async def load(self):
        raise StoreError("corrupt document")


def _state(repo, clock, **settings) -> AppState:
    values = dict(poll_interval_seconds=3600.0, notifications_enabled=False, timezone=None)
    values.update(settings)
    return AppState(
        settings=SimpleNamespace(**values),
        clock=clock,
        store=repo,
        controller=TaskLifecycleController(repo, clock),
    )


def _wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_background_runner_loads_and_accepts_work(repo, clock) -> None:
    state = _state(repo, clock)
    runner = start_scheduler_in_background(state, ready_timeout=5.0)
    assert runner is not None
    try:
        assert repo.loads == 1
        assert state.dispatcher is None

        task = state.call(state.controller.add_task(title="Mop", group_id="g1", recurrence=Weekly()))
        assert repo.snapshot().find_task(task.id) is not None
    finally:
        runner.stop()
        runner.join(timeout=5.0)

    assert not runner.thread.is_alive()


def test_background_runner_reports_failed_load(clock) -> None:
    state = _state(BrokenRepo(), clock)
    assert start_scheduler_in_background(state, ready_timeout=5.0) is None
    assert state.submit is None


def test_loop_permission_is_shared_with_commands(collection, clock, monkeypatch) -> None:
    # Daily health task at 21:50: inside the reset-reminder window.
    collection.tasks = [make_task("t1", group_id="health")]
    clock.set(datetime(2024, 1, 1, 21, 50))
    sender = FakeSender()

    async def fake_sender(settings):
        return sender

    monkeypatch.setattr(bootstrap, "create_sender", fake_sender)
    state = _state(FakeRepo(collection), clock, notifications_enabled=True, notify_suppress_hours=6.0)

    runner = start_scheduler_in_background(state, ready_timeout=5.0)
    assert runner is not None
    try:
        assert _wait_for(lambda: state.permission is PermissionState.GRANTED)
        assert sender.tags == ["task-reset-t1"]
        assert "(permission: granted)" in (registry.handle(state, "/status") or "")

        out = registry.handle(state, "/check") or ""
        assert out.endswith("notification permission granted.")
        assert sender.permission_requests == 1
        # Same window, still requested: not sent again.
        assert sender.tags == ["task-reset-t1"]
    finally:
        runner.stop()
        runner.join(timeout=5.0)
