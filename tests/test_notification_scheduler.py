# tests/test_notification_scheduler.py

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from taskcycle.notifications.due_dates import days_until_due, format_due_date, time_until_due
from taskcycle.notifications.notification_scheduler import evaluate, evaluate_task
from taskcycle.tasks.task_models import (
    Daily,
    Meal,
    MealTimes,
    Monthly,
    NotificationOverride,
    TaskGroup,
    Yearly,
    resolve_notifications,
)

from .fakes import make_task

CREATED = datetime(2024, 1, 1, 0, 0)
DUE = CREATED + timedelta(days=10)

WORK = TaskGroup(id="work", name="Work", enable_due_dates=True)
HEALTH = TaskGroup(id="health", name="Health", notifications_enabled=True)
QUIET = TaskGroup(id="quiet", name="Quiet")


def _tags(requests) -> list[str]:
    return [r.dedupe_tag for r in requests]


def _due_task(**kw):
    return make_task(**{"group_id": "work", "created_at": CREATED, "due_date": DUE, **kw})


# ---- due-date alerts ----


def test_quarter_remaining_alert_opens_at_three_quarters() -> None:
    task = _due_task()
    assert evaluate_task(task, WORK, [], CREATED + timedelta(days=7.4)) == []

    (req,) = evaluate_task(task, WORK, [], CREATED + timedelta(days=7.6))
    assert req.dedupe_tag == "task-25-t1"
    assert req.title == "Task Due Soon: Task t1"
    assert req.body == "Due in 2 days, 9 hours"


def test_quarter_remaining_alert_hit_by_regular_polling() -> None:
    task = _due_task()
    now = CREATED + timedelta(days=7.4)
    hits = []
    while now <= CREATED + timedelta(days=7.6):
        if "task-25-t1" in _tags(evaluate_task(task, WORK, [], now)):
            hits.append(now)
        now += timedelta(minutes=15)

    assert hits
    assert min(hits) >= CREATED + timedelta(days=7.5)


def test_window_is_half_open() -> None:
    task = _due_task()
    assert _tags(evaluate_task(task, WORK, [], CREATED + timedelta(days=7.5))) == ["task-25-t1"]
    assert evaluate_task(task, WORK, [], CREATED + timedelta(days=8)) == []


def test_due_today_alert() -> None:
    task = _due_task(due_date=datetime(2024, 1, 11, 18, 0))
    (req,) = evaluate_task(task, WORK, [], datetime(2024, 1, 11, 9, 0))
    assert req.dedupe_tag == "task-due-t1"
    assert req.body == "This task is due today in the Work group"


def test_overdue_alert_repeats_every_evaluation() -> None:
    task = _due_task()
    now = datetime(2024, 1, 13, 1, 0)
    first = evaluate_task(task, WORK, [], now)
    second = evaluate_task(task, WORK, [], now)
    assert _tags(first) == _tags(second) == ["task-overdue-t1"]
    assert first[0].body == "This task is 2 days overdue"


def test_due_dates_ignored_when_group_has_them_disabled() -> None:
    task = _due_task(group_id="quiet")
    assert evaluate_task(task, QUIET, [], datetime(2024, 1, 20)) == []


def test_completed_tasks_get_no_alerts() -> None:
    task = _due_task(is_completed=True, completed_by="p1", completed_at=CREATED)
    assert evaluate_task(task, WORK, [], datetime(2024, 1, 20)) == []


def test_zero_length_due_interval_is_skipped() -> None:
    task = _due_task(due_date=CREATED)
    assert evaluate_task(task, WORK, [], CREATED + timedelta(days=1)) == []


# ---- reset-imminent alerts ----


@pytest.mark.parametrize(
    ("now", "expected"),
    [
        (datetime(2024, 1, 1, 21, 30), []),
        (datetime(2024, 1, 1, 21, 50), ["task-reset-t1"]),
        (datetime(2024, 1, 1, 23, 0), []),
    ],
)
def test_reset_imminent_window(now, expected) -> None:
    task = make_task(group_id="health")
    assert _tags(evaluate_task(task, HEALTH, [], now)) == expected


def test_reset_imminent_message() -> None:
    task = make_task(group_id="health")
    (req,) = evaluate_task(task, HEALTH, [], datetime(2024, 1, 1, 21, 50))
    assert req.title == "Task Resets Soon: Task t1"
    assert req.body == "Daily task resets in 2 hours, 10 minutes"


@pytest.mark.parametrize(
    ("recurrence", "now", "body"),
    [
        (Monthly(), datetime(2024, 1, 29, 6, 0), "Monthly task resets in 2 days, 18 hours"),
        (Yearly(), datetime(2024, 12, 10, 12, 0), "Yearly task resets in 21 days, 12 hours"),
    ],
)
def test_reset_imminent_message_counts_days_for_long_periods(recurrence, now, body) -> None:
    task = make_task(group_id="health", recurrence=recurrence, created_at=CREATED)
    (req,) = evaluate_task(task, HEALTH, [], now)
    assert req.body == body


def test_task_override_beats_group_default() -> None:
    now = datetime(2024, 1, 1, 21, 50)

    inherit = make_task(group_id="quiet")
    assert evaluate_task(inherit, QUIET, [], now) == []

    enabled = make_task(group_id="quiet", notifications=NotificationOverride.ENABLED)
    assert _tags(evaluate_task(enabled, QUIET, [], now)) == ["task-reset-t1"]

    disabled = make_task(group_id="health", notifications=NotificationOverride.DISABLED)
    assert evaluate_task(disabled, HEALTH, [], now) == []


def test_resolve_notifications() -> None:
    assert resolve_notifications(NotificationOverride.ENABLED, False) is True
    assert resolve_notifications(NotificationOverride.DISABLED, True) is False
    assert resolve_notifications(NotificationOverride.INHERIT, True) is True
    assert resolve_notifications(NotificationOverride.INHERIT, None) is False


def test_meal_task_uses_assigned_profile_meal_table(profiles) -> None:
    task = make_task(
        group_id="health",
        recurrence=MealTimes(frozenset({Meal.BREAKFAST, Meal.LUNCH})),
        profile_ids=["p1"],
    )
    assert _tags(evaluate_task(task, HEALTH, profiles, datetime(2024, 1, 1, 11, 35))) == ["task-reset-t1"]


def test_meal_task_without_meal_table_is_silent(profiles) -> None:
    task = make_task(
        group_id="health",
        recurrence=MealTimes(frozenset({Meal.BREAKFAST, Meal.LUNCH})),
        profile_ids=["p2"],
    )
    assert evaluate_task(task, HEALTH, profiles, datetime(2024, 1, 1, 11, 35)) == []


def test_evaluate_skips_a_failing_task_and_keeps_going() -> None:
    broken = make_task("bad", group_id="health", recurrence=object())  # type: ignore[arg-type]
    good = make_task("ok", group_id="health", recurrence=Daily())
    out = evaluate([broken, good], [HEALTH], [], datetime(2024, 1, 1, 21, 50))
    assert _tags(out) == ["task-reset-ok"]


# ---- due-date helpers ----


def test_due_date_helpers() -> None:
    now = datetime(2024, 1, 1, 12, 0)
    assert days_until_due(datetime(2024, 1, 3, 13, 0), now) == 3
    assert time_until_due(datetime(2024, 1, 2, 14, 30), now).hours == 2
    assert time_until_due(datetime(2023, 12, 31), now).days == 0

    assert format_due_date(datetime(2024, 1, 1, 18, 0), now) == "Due tomorrow"
    assert format_due_date(datetime(2024, 1, 1, 12, 0), now) == "Due today"
    assert format_due_date(datetime(2023, 12, 29, 12, 0), now) == "Overdue by 3 days"
    assert format_due_date(datetime(2024, 1, 5, 12, 0), now) == "Due in 4 days"
    assert format_due_date(datetime(2024, 3, 1), now) == "2024-03-01"
