# src/taskcycle/tasks/lifecycle.py

from __future__ import annotations

"""
Task lifecycle controller.

Owns the in-memory TaskCollection and is the only writer to it:
- applies reset-policy decisions (automatic rollover, history action
  "auto-reset"),
- performs user actions (complete / uncheck / reset / restore / add / delete),
- persists the whole snapshot through the StateRepo port after each change.

All mutations run under one asyncio.Lock, so a poll-tick auto-reset and a
user action on the same task cannot interleave their read-then-write.
"""

import asyncio
import logging
import uuid
from dataclasses import replace
from datetime import datetime, tzinfo

from ..core.ports import Clock, StateRepo
from ..notifications.notification_scheduler import NotificationRequest, evaluate
from .recurrence import next_occurrence, recurrence_label, validate_pattern
from .reset_policy import meal_profile_for, should_reset
from .task_models import (
    HistoryAction,
    HistoryEntry,
    NotificationOverride,
    RecurrencePattern,
    Task,
    TaskCollection,
)

logger = logging.getLogger(__name__)


class TaskNotFoundError(KeyError):
    pass


class TaskLifecycleController:
    def __init__(self, repo: StateRepo, clock: Clock, *, tz: tzinfo | None = None) -> None:
        self._repo = repo
        self._clock = clock
        self._tz = tz
        self._collection = TaskCollection()
        self._lock = asyncio.Lock()

    @property
    def collection(self) -> TaskCollection:
        return self._collection

    @property
    def clock(self) -> Clock:
        return self._clock

    # ---- helpers ----

    def _get(self, task_id: str) -> Task:
        task = self._collection.find_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def _swap(self, updated: Task) -> None:
        self._collection.tasks = [updated if t.id == updated.id else t for t in self._collection.tasks]

    def _profile_name(self, profile_id: str | None) -> str:
        p = self._collection.find_profile(profile_id)
        return p.name if p is not None else "Unknown"

    def _record(
        self,
        task: Task,
        action: HistoryAction,
        profile_id: str | None,
        now: datetime,
        details: str,
    ) -> None:
        entry = HistoryEntry(
            id=uuid.uuid4().hex,
            task_id=task.id,
            profile_id=profile_id or "",
            action=action,
            timestamp=now,
            task_title=task.title,
            profile_name=self._profile_name(profile_id),
            details=details,
        )
        # Newest first.
        self._collection.history.insert(0, entry)

    @staticmethod
    def _cleared(task: Task) -> Task:
        return replace(task, is_completed=False, completed_by=None, completed_at=None)

    async def _persist(self) -> None:
        await self._repo.save(self._collection)

    # ---- automatic rollover ----

    def _auto_reset_locked(self, now: datetime) -> list[str]:
        changed: list[str] = []
        for task in list(self._collection.tasks):
            profile = meal_profile_for(task, self._collection.profiles)
            if not should_reset(task, now, profile=profile, tz=self._tz):
                continue

            prior_by = task.completed_by
            prior_at = task.completed_at
            self._swap(self._cleared(task))
            self._record(
                task,
                HistoryAction.AUTO_RESET,
                prior_by,
                now,
                (
                    f"{recurrence_label(task.recurrence)} recurrence reset; "
                    f"was completed by {self._profile_name(prior_by)} "
                    f"at {prior_at.isoformat() if prior_at else 'unknown time'}"
                ),
            )
            changed.append(task.id)
        return changed

    async def apply_auto_resets(self) -> list[str]:
        """Reset every completed task whose boundary has passed. Returns their ids."""
        async with self._lock:
            changed = self._auto_reset_locked(self._clock.now())
            if changed:
                logger.info("Auto-reset %d task(s): %s", len(changed), ", ".join(changed))
                await self._persist()
            return changed

    async def load(self) -> list[str]:
        """Read the snapshot and eagerly resolve stale completions before first use."""
        async with self._lock:
            self._collection = await self._repo.load()
            changed = self._auto_reset_locked(self._clock.now())
            if changed:
                logger.info("Auto-reset %d stale task(s) on load", len(changed))
                await self._persist()
            return changed

    # ---- user actions ----

    async def complete(self, task_id: str, profile_id: str) -> Task:
        async with self._lock:
            task = self._get(task_id)
            if task.is_completed:
                return task
            now = self._clock.now()
            updated = replace(task, is_completed=True, completed_by=profile_id, completed_at=now)
            self._swap(updated)
            self._record(task, HistoryAction.COMPLETED, profile_id, now, "Task marked as completed")
            await self._persist()
            return updated

    async def uncheck(self, task_id: str, profile_id: str) -> Task:
        """Undo a completion; history is preserved."""
        async with self._lock:
            task = self._get(task_id)
            if not task.is_completed:
                return task
            now = self._clock.now()
            updated = self._cleared(task)
            self._swap(updated)
            self._record(
                task, HistoryAction.UNCHECKED, profile_id, now,
                "Task unchecked - completion history preserved",
            )
            await self._persist()
            return updated

    async def toggle(self, task_id: str, profile_id: str) -> Task:
        task = self._get(task_id)
        if task.is_completed:
            return await self.uncheck(task_id, profile_id)
        return await self.complete(task_id, profile_id)

    async def reset(self, task_id: str) -> Task:
        """Manual reset: back to pending without a boundary check, history kept."""
        async with self._lock:
            task = self._get(task_id)
            now = self._clock.now()
            updated = self._cleared(task)
            self._swap(updated)
            self._record(
                task, HistoryAction.RESET, self._collection.active_profile_id, now,
                "Task reset - unchecked but completion history preserved",
            )
            await self._persist()
            return updated

    async def restore(self, task_id: str) -> Task:
        """Back to pending and drop every history entry of the task."""
        async with self._lock:
            task = self._get(task_id)
            now = self._clock.now()
            updated = self._cleared(task)
            self._swap(updated)
            self._collection.history = [h for h in self._collection.history if h.task_id != task_id]
            self._record(
                task, HistoryAction.RESTORED, self._collection.active_profile_id, now,
                "Task restored - all completion history removed",
            )
            await self._persist()
            return updated

    async def add_task(
        self,
        *,
        title: str,
        group_id: str,
        recurrence: RecurrencePattern,
        profile_ids: list[str] | None = None,
        due_date: datetime | None = None,
        recurrence_from_date: datetime | None = None,
        notifications: NotificationOverride = NotificationOverride.INHERIT,
    ) -> Task:
        for warning in validate_pattern(recurrence):
            logger.warning("Task %r: %s", title, warning)

        async with self._lock:
            siblings = [t.order for t in self._collection.tasks if t.group_id == group_id]
            task = Task(
                id=uuid.uuid4().hex[:12],
                title=title,
                group_id=group_id,
                recurrence=recurrence,
                created_at=self._clock.now(),
                profile_ids=list(profile_ids or []),
                order=max(siblings, default=-1) + 1,
                due_date=due_date,
                recurrence_from_date=recurrence_from_date,
                notifications=notifications,
            )
            self._collection.tasks.append(task)
            await self._persist()
            logger.info("Added task %s %r (%s)", task.id, title, recurrence.kind.value)
            return task

    async def delete_task(self, task_id: str) -> None:
        async with self._lock:
            self._get(task_id)
            self._collection.tasks = [t for t in self._collection.tasks if t.id != task_id]
            await self._persist()

    # ---- read-side ----

    def next_occurrence_for(self, task: Task) -> datetime:
        """Next occurrence shown for a task, from its last completion or start."""
        reference = task.completed_at or task.recurrence_from_date or task.created_at
        return next_occurrence(task.recurrence, reference)

    def notification_requests(self) -> list[NotificationRequest]:
        c = self._collection
        return evaluate(c.tasks, c.groups, c.profiles, self._clock.now(), tz=self._tz)
