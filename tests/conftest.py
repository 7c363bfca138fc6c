# tests/conftest.py

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from datetime import datetime
from types import SimpleNamespace

import pytest

from taskcycle.core.clock import FixedClock
from taskcycle.core.state import AppState
from taskcycle.tasks.lifecycle import TaskLifecycleController
from taskcycle.tasks.task_models import (
    MealSchedule,
    TaskCollection,
    TaskGroup,
    UserProfile,
)

from .fakes import FakeRepo

# Monday.
START = datetime(2024, 1, 1, 9, 0)


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(START)


@pytest.fixture()
def profiles() -> list[UserProfile]:
    return [
        UserProfile(id="p1", name="Alice", meal_times=MealSchedule(breakfast="07:00", lunch="12:00")),
        UserProfile(id="p2", name="Bob"),
    ]


@pytest.fixture()
def groups() -> list[TaskGroup]:
    return [
        TaskGroup(id="g1", name="Home", order=0),
        TaskGroup(id="work", name="Work", order=1, enable_due_dates=True),
        TaskGroup(id="health", name="Health", order=2, notifications_enabled=True),
    ]


@pytest.fixture()
def collection(groups, profiles) -> TaskCollection:
    return TaskCollection(groups=groups, profiles=profiles, active_profile_id="p1")


@pytest.fixture()
def repo(collection: TaskCollection) -> FakeRepo:
    return FakeRepo(collection)


@pytest.fixture()
def controller(repo: FakeRepo, clock: FixedClock) -> TaskLifecycleController:
    return TaskLifecycleController(repo, clock)


@pytest.fixture()
def settings(tmp_path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the commands.

    A SimpleNamespace rather than the real config keeps tests independent of
    the process environment.
    """
    return SimpleNamespace(
        data_dir=tmp_path,
        poll_interval_seconds=1800.0,
        timezone=None,
    )


@pytest.fixture()
def state(settings, clock, repo, controller) -> Iterator[AppState]:
    """
    AppState whose submit() runs coroutines on a private event loop, standing
    in for the background scheduler runner.
    """
    loop = asyncio.new_event_loop()
    st = AppState(
        settings=settings,
        clock=clock,
        store=repo,
        controller=controller,
        submit=loop.run_until_complete,
    )
    st.call(controller.load())
    try:
        yield st
    finally:
        loop.close()
