# src/taskcycle/tasks/reset_policy.py

from __future__ import annotations

"""
Reset policy.

Decides whether a completed task has crossed its recurrence boundary and
should go back to pending, and exposes the current recurrence period so the
notification scheduler can measure progress toward the next boundary with the
same rules.

All functions here are pure: they read their inputs and the supplied `now`,
never the wall clock, and never mutate a task.

Calendar rules (local wall time):
- Daily: calendar date changed.
- SpecificDays: calendar date changed AND today is a selected weekday.
- MealTimes: a selected meal time was passed after the last completion.
- Weekly / Fortnightly: at least 7 / 14 days elapsed.
- Monthly / Quarterly / HalfYearly / Yearly: month / quarter / half / year
  index changed. Quarter and half indices are floor((month-1)/3) and
  floor((month-1)/6), i.e. calendar-aligned regardless of the task's
  recurrence start date (see DESIGN.md, open questions).
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, tzinfo
from typing import assert_never

from ..core.clock import elapsed, js_weekday, to_local
from .recurrence import add_days, add_months, step_days, step_months
from .task_models import (
    Daily,
    Fortnightly,
    HalfYearly,
    MealSchedule,
    MealTimes,
    Monthly,
    Quarterly,
    RecurrencePattern,
    SpecificDays,
    Task,
    UserProfile,
    Weekly,
    Yearly,
)

logger = logging.getLogger(__name__)

_DAY = timedelta(days=1)


def _minute_of_day(dt: datetime) -> int:
    return dt.hour * 60 + dt.minute


def _midnight(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def _meal_boundary_crossed(meal_minutes: list[int], now_l: datetime, last_l: datetime) -> bool:
    now_min = _minute_of_day(now_l)
    if now_l.date() != last_l.date():
        return any(m <= now_min for m in meal_minutes)
    last_min = _minute_of_day(last_l)
    return any(last_min < m <= now_min for m in meal_minutes)


def crosses_boundary(
    pattern: RecurrencePattern,
    last_completed_at: datetime,
    now: datetime,
    *,
    recurrence_from: datetime | None = None,
    meal_times: MealSchedule | None = None,
    tz: tzinfo | None = None,
) -> bool:
    """Pattern-level reset predicate (see module docstring for the rules)."""
    now_l = to_local(now, tz)
    last_l = to_local(last_completed_at, tz)

    if recurrence_from is not None and not isinstance(pattern, MealTimes):
        if now_l < to_local(recurrence_from, tz):
            return False

    match pattern:
        case Daily():
            return now_l.date() != last_l.date()

        case SpecificDays(days=days):
            return now_l.date() != last_l.date() and js_weekday(now_l) in days

        case MealTimes(meals=meals):
            if meal_times is None:
                logger.warning("Meal-times recurrence without a profile meal table; not resetting")
                return False
            minutes = meal_times.minutes_for(meals)
            if not minutes:
                logger.warning("Meal-times recurrence has no usable meal times; not resetting")
                return False
            return _meal_boundary_crossed(minutes, now_l, last_l)

        case Weekly():
            return elapsed(now, last_completed_at, tz) // timedelta(days=7) >= 1

        case Fortnightly():
            return elapsed(now, last_completed_at, tz) // timedelta(days=14) >= 1

        case Monthly():
            return (now_l.month, now_l.year) != (last_l.month, last_l.year)

        case Quarterly():
            return (now_l.month - 1) // 3 != (last_l.month - 1) // 3 or now_l.year != last_l.year

        case HalfYearly():
            return (now_l.month - 1) // 6 != (last_l.month - 1) // 6 or now_l.year != last_l.year

        case Yearly():
            return now_l.year != last_l.year

        case _:
            assert_never(pattern)


def meal_profile_for(task: Task, profiles: Iterable[UserProfile]) -> UserProfile | None:
    """
    Profile whose meal table governs a MealTimes task: whoever completed it
    if they have a table, else the first assigned profile that has one.
    """
    by_id = {p.id: p for p in profiles}
    candidates = [task.completed_by, *task.profile_ids]
    for pid in candidates:
        p = by_id.get(pid) if pid else None
        if p is not None and p.meal_times is not None:
            return p
    return None


def should_reset(
    task: Task,
    now: datetime,
    *,
    profile: UserProfile | None = None,
    tz: tzinfo | None = None,
) -> bool:
    """
    True when a completed task should flip back to pending at `now`.

    Pending tasks always return False. Never raises: a failing evaluation is
    logged and treated as "do not reset".
    """
    if not task.is_completed or task.completed_at is None:
        return False
    try:
        return crosses_boundary(
            task.recurrence,
            task.completed_at,
            now,
            recurrence_from=task.recurrence_from_date,
            meal_times=profile.meal_times if profile is not None else None,
            tz=tz,
        )
    except Exception:
        logger.exception("Reset evaluation failed task_id=%s", task.id)
        return False


# ---- recurrence periods (progress toward the next boundary) ----


def _meal_period(meal_minutes: list[int], now_l: datetime) -> tuple[datetime, datetime]:
    today = _midnight(now_l)
    now_min = _minute_of_day(now_l)

    passed = [m for m in meal_minutes if m <= now_min]
    upcoming = [m for m in meal_minutes if m > now_min]

    if passed:
        start = today + timedelta(minutes=passed[-1])
    else:
        start = today - _DAY + timedelta(minutes=meal_minutes[-1])
    if upcoming:
        end = today + timedelta(minutes=upcoming[0])
    else:
        end = today + _DAY + timedelta(minutes=meal_minutes[0])
    return start, end


def _specific_days_period(days: frozenset[int], now_l: datetime) -> tuple[datetime, datetime] | None:
    valid = {d for d in days if 0 <= d <= 6}
    if not valid:
        return None
    today = _midnight(now_l)
    start = next(today - i * _DAY for i in range(7) if js_weekday(today - i * _DAY) in valid)
    end = next(today + i * _DAY for i in range(1, 8) if js_weekday(today + i * _DAY) in valid)
    return start, end


def _anchored_day_period(step: int, reference: datetime, now_l: datetime) -> tuple[datetime, datetime]:
    span = timedelta(days=step)
    n = (now_l - reference) // span
    start = add_days(reference, n * step)
    return start, add_days(start, step)


def _anchored_month_period(step: int, reference: datetime, now_l: datetime) -> tuple[datetime, datetime]:
    # Offsets are always taken from the original reference so clamped month
    # ends do not drift (Jan 31 -> Feb 28 -> Mar 31, not Mar 28).
    months = (now_l.year - reference.year) * 12 + (now_l.month - reference.month)
    k = months // step
    start = add_months(reference, k * step)
    if start > now_l:
        k -= 1
        start = add_months(reference, k * step)
    end = add_months(reference, (k + 1) * step)
    if end <= now_l:
        k += 1
        start, end = end, add_months(reference, (k + 1) * step)
    return start, end


def current_period(
    pattern: RecurrencePattern,
    reference: datetime,
    now: datetime,
    *,
    meal_times: MealSchedule | None = None,
    tz: tzinfo | None = None,
) -> tuple[datetime, datetime] | None:
    """
    The [start, end) recurrence window containing `now`, in local wall time.

    - Daily: local midnight to midnight.
    - SpecificDays: last selected weekday midnight to the next one.
    - MealTimes: last passed meal time to the next one (wrapping days).
    - Weekly / Fortnightly / month-based: periods anchored at `reference`.

    Returns None when no window exists (missing meal table, empty selection,
    `now` before the reference).
    """
    now_l = to_local(now, tz)
    ref_l = to_local(reference, tz)

    if isinstance(pattern, MealTimes):
        if meal_times is None:
            return None
        minutes = meal_times.minutes_for(pattern.meals)
        if not minutes:
            return None
        return _meal_period(minutes, now_l)

    if now_l < ref_l:
        return None

    match pattern:
        case Daily():
            start = _midnight(now_l)
            return start, start + _DAY
        case SpecificDays(days=days):
            return _specific_days_period(days, now_l)
        case Weekly() | Fortnightly():
            days_step = step_days(pattern) or 7
            return _anchored_day_period(days_step, ref_l, now_l)
        case Monthly() | Quarterly() | HalfYearly() | Yearly():
            months_step = step_months(pattern) or 1
            return _anchored_month_period(months_step, ref_l, now_l)
        case MealTimes():
            return None  # handled above
        case _:
            assert_never(pattern)


def period_progress(
    task: Task,
    now: datetime,
    *,
    profile: UserProfile | None = None,
    tz: tzinfo | None = None,
) -> tuple[float, datetime] | None:
    """
    Fraction of the current recurrence period elapsed, and the period end.

    The reference for non-meal patterns is recurrence_from_date, else
    created_at. None when the period cannot be determined or has zero length.
    """
    reference = task.recurrence_from_date or task.created_at
    window = current_period(
        task.recurrence,
        reference,
        now,
        meal_times=profile.meal_times if profile is not None else None,
        tz=tz,
    )
    if window is None:
        return None
    start, end = window
    total = (end - start).total_seconds()
    if total <= 0:
        return None
    done = (to_local(now, tz) - start).total_seconds()
    return done / total, end
