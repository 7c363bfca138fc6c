# tests/test_recurrence.py

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone

import pytest

from taskcycle.tasks.recurrence import (
    add_months,
    next_occurrence,
    recurrence_label,
    step_days,
    step_months,
    validate_pattern,
)
from taskcycle.tasks.task_models import (
    Daily,
    Fortnightly,
    HalfYearly,
    Meal,
    MealTimes,
    Monthly,
    Quarterly,
    SpecificDays,
    Weekly,
    Yearly,
)


@pytest.mark.parametrize(
    ("pattern", "expected"),
    [
        (Daily(), datetime(2024, 1, 2, 8, 30)),
        (Weekly(), datetime(2024, 1, 8, 8, 30)),
        (Fortnightly(), datetime(2024, 1, 15, 8, 30)),
        (Monthly(), datetime(2024, 2, 1, 8, 30)),
        (Quarterly(), datetime(2024, 4, 1, 8, 30)),
        (HalfYearly(), datetime(2024, 7, 1, 8, 30)),
        (Yearly(), datetime(2025, 1, 1, 8, 30)),
    ],
)
def test_next_occurrence_steps_and_keeps_time_of_day(pattern, expected) -> None:
    assert next_occurrence(pattern, datetime(2024, 1, 1, 8, 30)) == expected


def test_month_end_is_clamped() -> None:
    assert next_occurrence(Monthly(), datetime(2023, 1, 31)) == datetime(2023, 2, 28)
    assert next_occurrence(Monthly(), datetime(2024, 1, 31)) == datetime(2024, 2, 29)
    assert next_occurrence(Quarterly(), datetime(2023, 11, 30)) == datetime(2024, 2, 29)
    assert next_occurrence(HalfYearly(), datetime(2024, 8, 31)) == datetime(2025, 2, 28)
    assert next_occurrence(Yearly(), datetime(2024, 2, 29)) == datetime(2025, 2, 28)


@pytest.mark.parametrize("year", [2023, 2024])
def test_monthly_lands_in_next_month_on_clamped_day(year: int) -> None:
    day = date(year, 1, 1)
    while day.year == year:
        ref = datetime(day.year, day.month, day.day, 10, 15)
        nxt = next_occurrence(Monthly(), ref)

        want_year = year + 1 if day.month == 12 else year
        want_month = 1 if day.month == 12 else day.month + 1
        last = calendar.monthrange(want_year, want_month)[1]

        assert (nxt.year, nxt.month) == (want_year, want_month)
        assert nxt.day == min(day.day, last)
        assert (nxt.hour, nxt.minute) == (10, 15)
        day += timedelta(days=1)


def test_next_occurrence_keeps_timezone() -> None:
    ref = datetime(2024, 1, 31, 23, 0, tzinfo=timezone.utc)
    nxt = next_occurrence(Monthly(), ref)
    assert nxt.tzinfo is timezone.utc
    assert nxt == datetime(2024, 2, 29, 23, 0, tzinfo=timezone.utc)


def test_meal_and_specific_days_fall_back_to_next_day() -> None:
    ref = datetime(2024, 1, 1, 12, 0)
    assert next_occurrence(MealTimes(frozenset({Meal.LUNCH})), ref) == datetime(2024, 1, 2, 12, 0)
    assert next_occurrence(SpecificDays(frozenset({1})), ref) == datetime(2024, 1, 2, 12, 0)


def test_overflow_saturates_instead_of_raising() -> None:
    assert add_months(datetime(9999, 12, 15), 1) == datetime.max
    assert next_occurrence(Weekly(), datetime(9999, 12, 30)) == datetime.max


def test_step_tables() -> None:
    assert [step_days(p) for p in (Daily(), Weekly(), Fortnightly(), Monthly())] == [1, 7, 14, None]
    assert [step_months(p) for p in (Monthly(), Quarterly(), HalfYearly(), Yearly(), Weekly())] == [
        1,
        3,
        6,
        12,
        None,
    ]


def test_labels() -> None:
    assert recurrence_label(Daily()) == "Daily"
    assert recurrence_label(HalfYearly()) == "Half-Yearly"
    assert recurrence_label(MealTimes(frozenset({Meal.LUNCH, Meal.BREAKFAST}))) == "Meals: Breakfast, Lunch"
    assert recurrence_label(MealTimes()) == "Meal Times"
    assert recurrence_label(SpecificDays(frozenset({1, 2, 3, 4, 5}))) == "Work Days"
    assert recurrence_label(SpecificDays(frozenset({0, 6}))) == "Weekends"
    assert recurrence_label(SpecificDays(frozenset({3, 1}))) == "Days: Mon, Wed"


def test_validate_pattern_flags_inert_selections() -> None:
    assert validate_pattern(Daily()) == []
    assert validate_pattern(SpecificDays(frozenset({1, 3}))) == []
    assert validate_pattern(MealTimes())
    assert validate_pattern(SpecificDays(frozenset()))
    (warning,) = validate_pattern(SpecificDays(frozenset({1, 9})))
    assert "9" in warning
