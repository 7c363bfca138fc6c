# src/taskcycle/tasks/task_codec.py

from __future__ import annotations

"""
Dict <-> model conversion for the JSON document format.

Keys are camelCase and timestamps ISO-8601, matching documents written by the
web client. Decoding is lenient: a malformed record is logged and skipped
rather than failing the whole load.
"""

import logging
from datetime import datetime
from typing import Any

from .task_models import (
    Daily,
    Fortnightly,
    HalfYearly,
    HistoryAction,
    HistoryEntry,
    Meal,
    MealSchedule,
    MealTimes,
    Monthly,
    NotificationOverride,
    Quarterly,
    RecurrenceKind,
    RecurrencePattern,
    SpecificDays,
    Task,
    TaskCollection,
    TaskGroup,
    UserProfile,
    Weekly,
    Yearly,
)

logger = logging.getLogger(__name__)

_SIMPLE: dict[str, RecurrencePattern] = {
    RecurrenceKind.DAILY: Daily(),
    RecurrenceKind.WEEKLY: Weekly(),
    RecurrenceKind.FORTNIGHTLY: Fortnightly(),
    RecurrenceKind.MONTHLY: Monthly(),
    RecurrenceKind.QUARTERLY: Quarterly(),
    RecurrenceKind.HALF_YEARLY: HalfYearly(),
    RecurrenceKind.YEARLY: Yearly(),
}

# Kinds written by older clients.
_LEGACY: dict[str, RecurrencePattern] = {
    "breakfast": MealTimes(frozenset({Meal.BREAKFAST})),
    "lunch": MealTimes(frozenset({Meal.LUNCH})),
    "dinner": MealTimes(frozenset({Meal.DINNER})),
    "nightcap": MealTimes(frozenset({Meal.NIGHTCAP})),
    "work-daily": SpecificDays(frozenset({1, 2, 3, 4, 5})),
    "weekend-daily": SpecificDays(frozenset({0, 6})),
}


class DecodeError(ValueError):
    pass


def parse_ts(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw
    s = str(raw).strip()
    # JS Date.toISOString() uses a trailing Z.
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(s)
    except ValueError as e:
        raise DecodeError(f"bad timestamp {raw!r}") from e


def format_ts(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


def _meals(raw: Any) -> frozenset[Meal]:
    out: set[Meal] = set()
    for m in raw or []:
        try:
            out.add(Meal(str(m).strip().lower()))
        except ValueError:
            logger.warning("Unknown meal %r ignored", m)
    return frozenset(out)


def recurrence_from_raw(raw: Any, config: dict[str, Any] | None = None) -> RecurrencePattern:
    """
    Accepts a kind string ("weekly", legacy "lunch", ...) or an object
    {"type": "meal-times", "meals": [...]} / {"type": "specific-days", "days": [...]}.
    `config` carries pattern options when `raw` is a bare kind string.
    """
    if isinstance(raw, dict):
        config = raw
        raw = raw.get("type")
    kind = str(raw or "").strip().lower()
    cfg = config or {}

    if kind in _SIMPLE:
        return _SIMPLE[kind]
    if kind in _LEGACY:
        return _LEGACY[kind]
    if kind == RecurrenceKind.MEAL_TIMES:
        return MealTimes(_meals(cfg.get("meals")))
    if kind == RecurrenceKind.SPECIFIC_DAYS:
        try:
            days = frozenset(int(d) for d in cfg.get("days") or [])
        except (TypeError, ValueError) as e:
            raise DecodeError(f"bad weekday list {cfg.get('days')!r}") from e
        return SpecificDays(days)
    raise DecodeError(f"unknown recurrence {raw!r}")


def recurrence_to_raw(pattern: RecurrencePattern) -> str | dict[str, Any]:
    if isinstance(pattern, MealTimes):
        return {"type": pattern.kind.value, "meals": sorted(m.value for m in pattern.meals)}
    if isinstance(pattern, SpecificDays):
        return {"type": pattern.kind.value, "days": sorted(pattern.days)}
    return pattern.kind.value


def task_from_dict(d: dict[str, Any]) -> Task:
    created = parse_ts(d.get("createdAt"))
    if created is None:
        raise DecodeError(f"task {d.get('id')!r} has no createdAt")

    is_completed = bool(d.get("isCompleted", False))
    completed_at = parse_ts(d.get("completedAt"))
    if is_completed and completed_at is None:
        # Keep completedAt defined iff completed.
        logger.warning("Task %s is completed without completedAt; using createdAt", d.get("id"))
        completed_at = created
    if not is_completed:
        completed_at = None

    return Task(
        id=str(d["id"]),
        title=str(d.get("title", "")),
        group_id=str(d.get("groupId", "")),
        recurrence=recurrence_from_raw(d.get("recurrence"), d.get("recurrenceConfig")),
        created_at=created,
        is_completed=is_completed,
        completed_by=(d.get("completedBy") or None) if is_completed else None,
        completed_at=completed_at,
        profile_ids=[str(p) for p in d.get("profiles") or []],
        order=int(d.get("order", 0) or 0),
        due_date=parse_ts(d.get("dueDate")),
        recurrence_from_date=parse_ts(d.get("recurrenceFromDate")),
        notifications=NotificationOverride.from_db(d.get("notifications")),
    )


def task_to_dict(t: Task) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": t.id,
        "title": t.title,
        "groupId": t.group_id,
        "recurrence": recurrence_to_raw(t.recurrence),
        "isCompleted": t.is_completed,
        "createdAt": format_ts(t.created_at),
        "profiles": list(t.profile_ids),
        "order": t.order,
        "notifications": t.notifications.value,
    }
    if t.completed_by:
        out["completedBy"] = t.completed_by
    if t.completed_at is not None:
        out["completedAt"] = format_ts(t.completed_at)
    if t.due_date is not None:
        out["dueDate"] = format_ts(t.due_date)
    if t.recurrence_from_date is not None:
        out["recurrenceFromDate"] = format_ts(t.recurrence_from_date)
    return out


def group_from_dict(d: dict[str, Any]) -> TaskGroup:
    return TaskGroup(
        id=str(d["id"]),
        name=str(d.get("name", "")),
        enable_due_dates=bool(d.get("enableDueDates", False)),
        notifications_enabled=bool(d.get("enableNotifications", False)),
        order=int(d.get("order", 0) or 0),
        created_at=parse_ts(d.get("createdAt")),
    )


def group_to_dict(g: TaskGroup) -> dict[str, Any]:
    return {
        "id": g.id,
        "name": g.name,
        "enableDueDates": g.enable_due_dates,
        "enableNotifications": g.notifications_enabled,
        "order": g.order,
        "createdAt": format_ts(g.created_at),
    }


def profile_from_dict(d: dict[str, Any]) -> UserProfile:
    raw_meals = d.get("mealTimes")
    meals = None
    if isinstance(raw_meals, dict):
        meals = MealSchedule(
            breakfast=raw_meals.get("breakfast"),
            lunch=raw_meals.get("lunch"),
            dinner=raw_meals.get("dinner"),
            nightcap=raw_meals.get("nightcap"),
        )
    return UserProfile(
        id=str(d["id"]),
        name=str(d.get("name", "")),
        meal_times=meals,
        created_at=parse_ts(d.get("createdAt")),
    )


def profile_to_dict(p: UserProfile) -> dict[str, Any]:
    out: dict[str, Any] = {"id": p.id, "name": p.name, "createdAt": format_ts(p.created_at)}
    if p.meal_times is not None:
        m = p.meal_times
        out["mealTimes"] = {
            k: v
            for k, v in (
                ("breakfast", m.breakfast),
                ("lunch", m.lunch),
                ("dinner", m.dinner),
                ("nightcap", m.nightcap),
            )
            if v
        }
    return out


def history_from_dict(d: dict[str, Any]) -> HistoryEntry:
    ts = parse_ts(d.get("timestamp"))
    if ts is None:
        raise DecodeError(f"history entry {d.get('id')!r} has no timestamp")
    return HistoryEntry(
        id=str(d["id"]),
        task_id=str(d.get("taskId", "")),
        profile_id=str(d.get("profileId", "")),
        action=HistoryAction(str(d.get("action"))),
        timestamp=ts,
        task_title=str(d.get("taskTitle", "")),
        profile_name=str(d.get("profileName", "")),
        details=d.get("details"),
    )


def history_to_dict(h: HistoryEntry) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": h.id,
        "taskId": h.task_id,
        "profileId": h.profile_id,
        "action": h.action.value,
        "timestamp": format_ts(h.timestamp),
        "taskTitle": h.task_title,
        "profileName": h.profile_name,
    }
    if h.details:
        out["details"] = h.details
    return out


def _decode_list(items: Any, decode, what: str) -> list:
    out = []
    if not isinstance(items, list):
        return out
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            out.append(decode(item))
        except (DecodeError, KeyError, ValueError, TypeError) as e:
            logger.warning("Skipping malformed %s record id=%r: %s", what, item.get("id"), e)
    return out


def collection_from_dict(d: dict[str, Any]) -> TaskCollection:
    return TaskCollection(
        tasks=_decode_list(d.get("tasks"), task_from_dict, "task"),
        groups=_decode_list(d.get("groups"), group_from_dict, "group"),
        profiles=_decode_list(d.get("profiles"), profile_from_dict, "profile"),
        history=_decode_list(d.get("history"), history_from_dict, "history"),
        active_profile_id=str(d.get("activeProfileId") or ""),
    )


def collection_to_dict(c: TaskCollection) -> dict[str, Any]:
    return {
        "tasks": [task_to_dict(t) for t in c.tasks],
        "groups": [group_to_dict(g) for g in c.groups],
        "profiles": [profile_to_dict(p) for p in c.profiles],
        "history": [history_to_dict(h) for h in c.history],
        "activeProfileId": c.active_profile_id,
    }
