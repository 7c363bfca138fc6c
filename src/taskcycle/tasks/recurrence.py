# src/taskcycle/tasks/recurrence.py

from __future__ import annotations

"""
Recurrence calculator.

Pure date arithmetic over RecurrencePattern:
- day-based patterns step by a fixed number of days,
- month-based patterns step by calendar months and clamp to the last day of
  the target month (Jan 31 + 1 month -> Feb 28/29, Feb 29 + 1 year -> Feb 28).
"""

import logging
from datetime import datetime, timedelta
from typing import assert_never

from dateutil.relativedelta import relativedelta

from .task_models import (
    Daily,
    Fortnightly,
    HalfYearly,
    MealTimes,
    Monthly,
    Quarterly,
    RecurrencePattern,
    SpecificDays,
    Weekly,
    Yearly,
)

logger = logging.getLogger(__name__)

_WEEKDAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


def step_days(pattern: RecurrencePattern) -> int | None:
    """Fixed period length in days, or None for calendar-month patterns."""
    match pattern:
        case Daily() | SpecificDays() | MealTimes():
            return 1
        case Weekly():
            return 7
        case Fortnightly():
            return 14
        case Monthly() | Quarterly() | HalfYearly() | Yearly():
            return None
        case _:
            assert_never(pattern)


def step_months(pattern: RecurrencePattern) -> int | None:
    """Period length in calendar months, or None for day-based patterns."""
    match pattern:
        case Monthly():
            return 1
        case Quarterly():
            return 3
        case HalfYearly():
            return 6
        case Yearly():
            return 12
        case Daily() | SpecificDays() | MealTimes() | Weekly() | Fortnightly():
            return None
        case _:
            assert_never(pattern)


def _saturated(reference: datetime) -> datetime:
    return datetime.max.replace(tzinfo=reference.tzinfo)


def add_months(reference: datetime, months: int) -> datetime:
    """Calendar-month addition, clamped to the last day of the target month."""
    try:
        return reference + relativedelta(months=months)
    except (OverflowError, ValueError):
        if months < 0:
            return datetime.min.replace(tzinfo=reference.tzinfo)
        return _saturated(reference)


def add_days(reference: datetime, days: int) -> datetime:
    try:
        return reference + timedelta(days=days)
    except OverflowError:
        if days < 0:
            return datetime.min.replace(tzinfo=reference.tzinfo)
        return _saturated(reference)


def next_occurrence(pattern: RecurrencePattern, reference: datetime) -> datetime:
    """
    Next occurrence after `reference` for the given pattern.

    MealTimes and SpecificDays fall back to "next day" here; their real
    boundaries depend on a meal table / weekday set and are handled by the
    reset policy.
    """
    days = step_days(pattern)
    if days is not None:
        return add_days(reference, days)

    months = step_months(pattern)
    if months is None:
        # Unreachable for the closed union; keep the function total.
        logger.error("Pattern without step: %r", pattern)
        return add_days(reference, 1)
    return add_months(reference, months)


def recurrence_label(pattern: RecurrencePattern) -> str:
    match pattern:
        case Daily():
            return "Daily"
        case Weekly():
            return "Weekly"
        case Fortnightly():
            return "Fortnightly"
        case Monthly():
            return "Monthly"
        case Quarterly():
            return "Quarterly"
        case HalfYearly():
            return "Half-Yearly"
        case Yearly():
            return "Yearly"
        case MealTimes(meals=meals):
            if not meals:
                return "Meal Times"
            names = sorted(m.value for m in meals)
            return "Meals: " + ", ".join(n.capitalize() for n in names)
        case SpecificDays(days=days):
            if days == frozenset({1, 2, 3, 4, 5}):
                return "Work Days"
            if days == frozenset({0, 6}):
                return "Weekends"
            return "Days: " + ", ".join(_WEEKDAY_NAMES[d] for d in sorted(days) if 0 <= d <= 6)
        case _:
            assert_never(pattern)


def validate_pattern(pattern: RecurrencePattern) -> list[str]:
    """Editing-time warnings. An invalid pattern is inert, never an error."""
    warnings: list[str] = []
    match pattern:
        case MealTimes(meals=meals) if not meals:
            warnings.append("meal-times recurrence has no meals selected; it will never reset")
        case SpecificDays(days=days):
            if not days:
                warnings.append("specific-days recurrence has no days selected; it will never reset")
            bad = sorted(d for d in days if not 0 <= d <= 6)
            if bad:
                warnings.append(f"weekday numbers out of range 0-6: {bad}")
        case _:
            pass
    return warnings
