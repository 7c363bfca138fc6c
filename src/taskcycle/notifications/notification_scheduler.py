# src/taskcycle/notifications/notification_scheduler.py

from __future__ import annotations

"""
Notification scheduler.

Pull-style evaluation, called once per polling tick (and right after load):
given the current snapshot and `now`, decide which reminders are eligible.

Alerts for pending tasks with a due date (group has due dates enabled):
- 25% remaining: elapsed / (due - created) in [0.75, 0.80)
- due today: same local calendar date as the due date
- overdue: now > due (every tick; the dispatcher suppresses repeats by tag)

Alerts for pending tasks without a due date whose notifications resolve to
enabled:
- reset imminent: progress through the current recurrence period in
  [0.90, 0.95)

The windows are half-open so a 30-minute cadence hits each one about once.
The scheduler has no memory of what it already sent.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, tzinfo

from ..core.clock import elapsed, to_local
from ..tasks.recurrence import recurrence_label
from ..tasks.reset_policy import meal_profile_for, period_progress
from ..tasks.task_models import (
    MealTimes,
    Task,
    TaskGroup,
    UserProfile,
    resolve_notifications,
)
from .due_dates import days_until_due, is_due_today, is_overdue, plural, time_until_due

logger = logging.getLogger(__name__)

DUE_SOON_WINDOW = (0.75, 0.80)
RESET_SOON_WINDOW = (0.90, 0.95)


@dataclass(slots=True, frozen=True)
class NotificationRequest:
    title: str
    body: str
    dedupe_tag: str
    task_id: str | None = None


def _in_window(value: float, window: tuple[float, float]) -> bool:
    lo, hi = window
    return lo <= value < hi


def _due_date_alerts(
    task: Task, due: datetime, group: TaskGroup, now: datetime, tz: tzinfo | None
) -> list[NotificationRequest]:
    out: list[NotificationRequest] = []

    total = elapsed(due, task.created_at, tz).total_seconds()
    if total == 0:
        logger.debug("Task %s: due date equals creation time, skipping", task.id)
        return out
    if total > 0:
        progress = elapsed(now, task.created_at, tz).total_seconds() / total
        if _in_window(progress, DUE_SOON_WINDOW):
            left = time_until_due(due, now, tz)
            out.append(
                NotificationRequest(
                    title=f"Task Due Soon: {task.title}",
                    body=f"Due in {plural(left.days, 'day')}, {plural(left.hours, 'hour')}",
                    dedupe_tag=f"task-25-{task.id}",
                    task_id=task.id,
                )
            )

    if is_due_today(due, now, tz):
        out.append(
            NotificationRequest(
                title=f"Task Due Today: {task.title}",
                body=f"This task is due today in the {group.name} group",
                dedupe_tag=f"task-due-{task.id}",
                task_id=task.id,
            )
        )

    if is_overdue(due, now, tz):
        days_over = abs(days_until_due(due, now, tz))
        out.append(
            NotificationRequest(
                title=f"Overdue Task: {task.title}",
                body=f"This task is {plural(days_over, 'day')} overdue",
                dedupe_tag=f"task-overdue-{task.id}",
                task_id=task.id,
            )
        )
    return out


def _reset_alert(
    task: Task,
    profile: UserProfile | None,
    now: datetime,
    tz: tzinfo | None,
) -> NotificationRequest | None:
    if isinstance(task.recurrence, MealTimes) and profile is None:
        logger.debug("Task %s: meal-times without a meal table, skipping reset alert", task.id)
        return None

    result = period_progress(task, now, profile=profile, tz=tz)
    if result is None:
        return None
    progress, boundary = result
    if not _in_window(progress, RESET_SOON_WINDOW):
        return None

    # boundary is local wall time
    left = time_until_due(boundary, to_local(now, tz))
    if left.days >= 1:
        remaining = f"{plural(left.days, 'day')}, {plural(left.hours, 'hour')}"
    else:
        remaining = f"{plural(left.hours, 'hour')}, {plural(left.minutes, 'minute')}"
    return NotificationRequest(
        title=f"Task Resets Soon: {task.title}",
        body=f"{recurrence_label(task.recurrence)} task resets in {remaining}",
        dedupe_tag=f"task-reset-{task.id}",
        task_id=task.id,
    )


def evaluate_task(
    task: Task,
    group: TaskGroup | None,
    profiles: Iterable[UserProfile],
    now: datetime,
    *,
    tz: tzinfo | None = None,
) -> list[NotificationRequest]:
    if task.is_completed:
        return []

    if task.due_date is not None:
        if group is None or not group.enable_due_dates:
            return []
        return _due_date_alerts(task, task.due_date, group, now, tz)

    group_default = group.notifications_enabled if group is not None else None
    if not resolve_notifications(task.notifications, group_default):
        return []

    profile = meal_profile_for(task, profiles) if isinstance(task.recurrence, MealTimes) else None
    alert = _reset_alert(task, profile, now, tz)
    return [alert] if alert is not None else []


def evaluate(
    tasks: Iterable[Task],
    groups: Iterable[TaskGroup],
    profiles: Iterable[UserProfile],
    now: datetime,
    *,
    tz: tzinfo | None = None,
) -> list[NotificationRequest]:
    """
    All eligible reminders at `now`. Never raises; a task that fails to
    evaluate is logged and skipped.
    """
    groups_by_id = {g.id: g for g in groups}
    profile_list = list(profiles)

    out: list[NotificationRequest] = []
    for task in tasks:
        try:
            out.extend(
                evaluate_task(task, groups_by_id.get(task.group_id), profile_list, now, tz=tz)
            )
        except Exception:
            logger.exception("Notification evaluation failed task_id=%s", task.id)
    return out
