# src/taskcycle/tasks/task_models.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Union

logger = logging.getLogger(__name__)


class RecurrenceKind(StrEnum):
    """Serialized name of each recurrence pattern variant."""

    DAILY = "daily"
    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    HALF_YEARLY = "half-yearly"
    YEARLY = "yearly"
    MEAL_TIMES = "meal-times"
    SPECIFIC_DAYS = "specific-days"


class Meal(StrEnum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    NIGHTCAP = "nightcap"


@dataclass(slots=True, frozen=True)
class Daily:
    kind = RecurrenceKind.DAILY


@dataclass(slots=True, frozen=True)
class Weekly:
    kind = RecurrenceKind.WEEKLY


@dataclass(slots=True, frozen=True)
class Fortnightly:
    kind = RecurrenceKind.FORTNIGHTLY


@dataclass(slots=True, frozen=True)
class Monthly:
    kind = RecurrenceKind.MONTHLY


@dataclass(slots=True, frozen=True)
class Quarterly:
    kind = RecurrenceKind.QUARTERLY


@dataclass(slots=True, frozen=True)
class HalfYearly:
    kind = RecurrenceKind.HALF_YEARLY


@dataclass(slots=True, frozen=True)
class Yearly:
    kind = RecurrenceKind.YEARLY


@dataclass(slots=True, frozen=True)
class MealTimes:
    """Resets after each selected meal boundary of the profile's meal table."""

    meals: frozenset[Meal] = frozenset()
    kind = RecurrenceKind.MEAL_TIMES


@dataclass(slots=True, frozen=True)
class SpecificDays:
    """Resets on the selected weekdays. 0=Sunday ... 6=Saturday."""

    days: frozenset[int] = frozenset()
    kind = RecurrenceKind.SPECIFIC_DAYS


RecurrencePattern = Union[
    Daily,
    Weekly,
    Fortnightly,
    Monthly,
    Quarterly,
    HalfYearly,
    Yearly,
    MealTimes,
    SpecificDays,
]


class NotificationOverride(StrEnum):
    """Per-task notification setting; INHERIT defers to the group default."""

    ENABLED = "enabled"
    DISABLED = "disabled"
    INHERIT = "inherit"

    @classmethod
    def from_db(cls, raw: object) -> NotificationOverride:
        # Older documents stored true/false/missing.
        if raw is True:
            return cls.ENABLED
        if raw is False:
            return cls.DISABLED
        if not raw:
            return cls.INHERIT
        try:
            return cls(str(raw))
        except ValueError:
            return cls.INHERIT


def resolve_notifications(override: NotificationOverride, group_default: bool | None) -> bool:
    if override is NotificationOverride.ENABLED:
        return True
    if override is NotificationOverride.DISABLED:
        return False
    return bool(group_default)


class HistoryAction(StrEnum):
    COMPLETED = "completed"
    UNCHECKED = "unchecked"
    RESET = "reset"
    RESTORED = "restored"
    AUTO_RESET = "auto-reset"


def parse_hhmm(raw: str | None) -> int | None:
    """'07:30' -> 450 (minute of day). Returns None for missing/invalid values."""
    if not raw:
        return None
    try:
        hh, mm = str(raw).strip().split(":", 1)
        h, m = int(hh), int(mm)
    except ValueError:
        logger.warning("Invalid meal time %r (expected HH:MM)", raw)
        return None
    if not (0 <= h < 24 and 0 <= m < 60):
        logger.warning("Meal time out of range: %r", raw)
        return None
    return h * 60 + m


@dataclass(slots=True, frozen=True)
class MealSchedule:
    """Wall-clock meal times for one profile, as HH:MM strings."""

    breakfast: str | None = None
    lunch: str | None = None
    dinner: str | None = None
    nightcap: str | None = None

    def minute_of(self, meal: Meal) -> int | None:
        return parse_hhmm(getattr(self, meal.value))

    def minutes_for(self, meals: frozenset[Meal]) -> list[int]:
        """Sorted minute-of-day values of the given meals that are configured."""
        out = {m for m in (self.minute_of(meal) for meal in meals) if m is not None}
        return sorted(out)


@dataclass(slots=True)
class Task:
    id: str
    title: str
    group_id: str
    recurrence: RecurrencePattern
    created_at: datetime

    is_completed: bool = False
    completed_by: str | None = None
    completed_at: datetime | None = None

    profile_ids: list[str] = field(default_factory=list)
    order: int = 0
    due_date: datetime | None = None
    recurrence_from_date: datetime | None = None
    notifications: NotificationOverride = NotificationOverride.INHERIT


@dataclass(slots=True)
class TaskGroup:
    id: str
    name: str
    enable_due_dates: bool = False
    notifications_enabled: bool = False
    order: int = 0
    created_at: datetime | None = None


@dataclass(slots=True)
class UserProfile:
    id: str
    name: str
    meal_times: MealSchedule | None = None
    created_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class HistoryEntry:
    id: str
    task_id: str
    profile_id: str
    action: HistoryAction
    timestamp: datetime
    task_title: str
    profile_name: str
    details: str | None = None


@dataclass(slots=True)
class TaskCollection:
    """Snapshot of everything the store persists for one household."""

    tasks: list[Task] = field(default_factory=list)
    groups: list[TaskGroup] = field(default_factory=list)
    profiles: list[UserProfile] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)
    active_profile_id: str = ""

    def find_task(self, task_id: str) -> Task | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    def find_group(self, group_id: str) -> TaskGroup | None:
        for g in self.groups:
            if g.id == group_id:
                return g
        return None

    def find_profile(self, profile_id: str | None) -> UserProfile | None:
        if not profile_id:
            return None
        for p in self.profiles:
            if p.id == profile_id:
                return p
        return None
