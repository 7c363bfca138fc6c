# src/taskcycle/tasks/default_data.py

from __future__ import annotations

from datetime import datetime

from .task_models import (
    Daily,
    Meal,
    MealSchedule,
    MealTimes,
    SpecificDays,
    Task,
    TaskCollection,
    TaskGroup,
    UserProfile,
    Weekly,
)

DEFAULT_MEAL_TIMES = MealSchedule(breakfast="07:00", lunch="12:00", dinner="18:00", nightcap="21:00")


def default_collection(now: datetime) -> TaskCollection:
    """Starter household used when no document exists yet."""
    groups = [
        TaskGroup(id="personal", name="Personal", order=0, created_at=now),
        TaskGroup(id="work", name="Work", order=1, created_at=now, enable_due_dates=True),
        TaskGroup(id="health", name="Health", order=2, created_at=now, notifications_enabled=True),
        TaskGroup(id="household", name="Household", order=3, created_at=now, enable_due_dates=True),
    ]
    profiles = [
        UserProfile(id="default", name="Me", meal_times=DEFAULT_MEAL_TIMES, created_at=now),
    ]
    tasks = [
        Task(id="task-1", title="Morning meditation", group_id="personal", recurrence=Daily(),
             created_at=now, profile_ids=["default"], order=0),
        Task(id="task-2", title="Check emails", group_id="work",
             recurrence=SpecificDays(frozenset({1, 2, 3, 4, 5})),
             created_at=now, profile_ids=["default"], order=0),
        Task(id="task-3", title="Take vitamins", group_id="health",
             recurrence=MealTimes(frozenset({Meal.BREAKFAST})),
             created_at=now, profile_ids=["default"], order=0),
        Task(id="task-4", title="Weekly meal prep", group_id="household", recurrence=Weekly(),
             created_at=now, profile_ids=["default"], order=0),
    ]
    return TaskCollection(
        tasks=tasks,
        groups=groups,
        profiles=profiles,
        history=[],
        active_profile_id="default",
    )
