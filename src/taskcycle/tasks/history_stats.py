# src/taskcycle/tasks/history_stats.py

from __future__ import annotations

"""
History statistics.

Pure summary of the last two weeks of history: action counts, completions
per weekday, per-profile and per-task completion rates, and the week over
week change. Nothing here reads the clock or the store; callers pass `now`.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo

from ..core.clock import elapsed, js_weekday, to_local
from .task_models import HistoryAction, HistoryEntry, Task, UserProfile

RECENT_WINDOW = timedelta(days=14)
WEEK = timedelta(days=7)
CONSISTENT_MIN_COMPLETIONS = 3
CONSISTENT_TOP = 3

# Indexed by js_weekday (0=Sunday).
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


@dataclass(slots=True, frozen=True)
class DayCount:
    day: str
    completions: int


@dataclass(slots=True, frozen=True)
class ProfileStats:
    profile: UserProfile
    completions: int
    unchecked: int
    accuracy: float  # percent; 0 when nothing was completed


@dataclass(slots=True, frozen=True)
class TaskStats:
    task: Task
    completions: int
    unchecked: int
    consistency: float  # percent; 0 when nothing was completed


@dataclass(slots=True, frozen=True)
class HistoryStats:
    completed: int
    unchecked: int
    reset: int
    restored: int
    auto_reset: int
    by_weekday: tuple[DayCount, ...]
    most_productive_day: DayCount
    profiles: tuple[ProfileStats, ...]
    tasks: tuple[TaskStats, ...]
    most_consistent: tuple[TaskStats, ...]
    this_week: int
    last_week: int

    @property
    def most_active_profile(self) -> ProfileStats | None:
        return self.profiles[0] if self.profiles else None

    @property
    def weekly_trend(self) -> int:
        return self.this_week - self.last_week


def _rate(completions: int, unchecked: int) -> float:
    if completions <= 0:
        return 0.0
    return (completions - unchecked) / completions * 100


def history_stats(
    history: Iterable[HistoryEntry],
    tasks: Iterable[Task],
    profiles: Iterable[UserProfile],
    now: datetime,
    *,
    tz: tzinfo | None = None,
) -> HistoryStats:
    """
    Summarise entries at most 14 days old.

    Weekdays are local. "This week" is the last 7 days up to and including
    `now`; "last week" the 7 days before that. Ties keep the earlier item:
    Sunday first for weekdays, input order for profiles and tasks.
    """
    recent: list[tuple[HistoryEntry, timedelta]] = []
    for entry in history:
        age = elapsed(now, entry.timestamp, tz)
        if age <= RECENT_WINDOW:
            recent.append((entry, age))

    def of(action: HistoryAction) -> list[tuple[HistoryEntry, timedelta]]:
        return [(e, age) for e, age in recent if e.action is action]

    completed = of(HistoryAction.COMPLETED)
    unchecked = of(HistoryAction.UNCHECKED)

    per_day = [0] * 7
    for entry, _ in completed:
        per_day[js_weekday(to_local(entry.timestamp, tz))] += 1
    by_weekday = tuple(DayCount(DAY_NAMES[i], n) for i, n in enumerate(per_day))
    most_productive = by_weekday[0]
    for day in by_weekday[1:]:
        if day.completions > most_productive.completions:
            most_productive = day

    def count(rows: list[tuple[HistoryEntry, timedelta]], attr: str, key: str) -> int:
        return sum(1 for e, _ in rows if getattr(e, attr) == key)

    profile_rows = []
    for p in profiles:
        c = count(completed, "profile_id", p.id)
        u = count(unchecked, "profile_id", p.id)
        profile_rows.append(ProfileStats(p, c, u, _rate(c, u)))
    profile_rows.sort(key=lambda s: s.completions, reverse=True)

    task_rows = []
    for t in tasks:
        c = count(completed, "task_id", t.id)
        u = count(unchecked, "task_id", t.id)
        task_rows.append(TaskStats(t, c, u, _rate(c, u)))
    task_rows.sort(key=lambda s: s.completions, reverse=True)

    consistent = sorted(
        (s for s in task_rows if s.completions >= CONSISTENT_MIN_COMPLETIONS),
        key=lambda s: s.consistency,
        reverse=True,
    )[:CONSISTENT_TOP]

    return HistoryStats(
        completed=len(completed),
        unchecked=len(unchecked),
        reset=len(of(HistoryAction.RESET)),
        restored=len(of(HistoryAction.RESTORED)),
        auto_reset=len(of(HistoryAction.AUTO_RESET)),
        by_weekday=by_weekday,
        most_productive_day=most_productive,
        profiles=tuple(profile_rows),
        tasks=tuple(task_rows),
        most_consistent=tuple(consistent),
        this_week=sum(1 for _, age in completed if timedelta(0) <= age <= WEEK),
        last_week=sum(1 for _, age in completed if WEEK < age <= RECENT_WINDOW),
    )
