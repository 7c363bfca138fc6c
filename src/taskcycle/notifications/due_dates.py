# src/taskcycle/notifications/due_dates.py

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, tzinfo

from ..core.clock import elapsed, to_local

_DAY_S = 24 * 60 * 60


@dataclass(slots=True, frozen=True)
class TimeLeft:
    days: int
    hours: int
    minutes: int


def days_until_due(due: datetime, now: datetime, tz: tzinfo | None = None) -> int:
    """Whole days until `due`, rounded up (negative when overdue)."""
    return math.ceil(elapsed(due, now, tz).total_seconds() / _DAY_S)


def time_until_due(due: datetime, now: datetime, tz: tzinfo | None = None) -> TimeLeft:
    secs = elapsed(due, now, tz).total_seconds()
    if secs <= 0:
        return TimeLeft(0, 0, 0)
    days, rem = divmod(int(secs), _DAY_S)
    hours, rem = divmod(rem, 3600)
    return TimeLeft(days, hours, rem // 60)


def is_due_today(due: datetime, now: datetime, tz: tzinfo | None = None) -> bool:
    return to_local(due, tz).date() == to_local(now, tz).date()


def is_overdue(due: datetime, now: datetime, tz: tzinfo | None = None) -> bool:
    return elapsed(now, due, tz).total_seconds() > 0


def plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def format_due_date(due: datetime, now: datetime, tz: tzinfo | None = None) -> str:
    """Short human description: 'Overdue by 2 days', 'Due today', 'Due in 3 days', ..."""
    diff = days_until_due(due, now, tz)
    if diff < 0:
        return f"Overdue by {plural(abs(diff), 'day')}"
    if diff == 0:
        return "Due today"
    if diff == 1:
        return "Due tomorrow"
    if diff <= 7:
        return f"Due in {diff} days"
    return to_local(due, tz).date().isoformat()
