# src/taskcycle/core/clock.py

from __future__ import annotations

from datetime import datetime, timedelta, tzinfo


class SystemClock:
    """Wall clock. Returns aware datetimes in `tz` (system zone when None)."""

    def __init__(self, tz: tzinfo | None = None) -> None:
        self.tz = tz

    def now(self) -> datetime:
        return datetime.now().astimezone(self.tz)


class FixedClock:
    """Manually driven clock for tests and replays."""

    def __init__(self, now: datetime) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    def advance(self, **delta: float) -> datetime:
        self._now = self._now + timedelta(**delta)
        return self._now


def to_local(dt: datetime, tz: tzinfo | None = None) -> datetime:
    """
    Local wall-clock view of `dt` as a naive datetime.

    Aware values are converted into `tz` (system zone when None); naive values
    are taken to already be local wall time.
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(tz).replace(tzinfo=None)


def elapsed(now: datetime, then: datetime, tz: tzinfo | None = None) -> timedelta:
    if now.tzinfo is not None and then.tzinfo is not None:
        return now - then
    return to_local(now, tz) - to_local(then, tz)


def js_weekday(dt: datetime) -> int:
    # 0=Sunday ... 6=Saturday
    return (dt.weekday() + 1) % 7
