# src/taskcycle/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.clock import to_local
from ..core.state import AppState
from ..notifications.due_dates import format_due_date
from ..tasks.history_stats import history_stats
from ..tasks.lifecycle import TaskNotFoundError
from ..tasks.recurrence import recurrence_label
from ..tasks.task_scheduler import run_tick

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(state, args)
        except TaskNotFoundError as e:
            return f"No task with id {e.args[0]!r}. Use /tasks to list ids."

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _fmt_dt(state: AppState, dt) -> str:
    return to_local(dt, getattr(state.settings, "timezone", None)).strftime("%Y-%m-%d %H:%M")


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    c = state.controller.collection
    done = sum(1 for t in c.tasks if t.is_completed)
    tz = getattr(state.settings, "timezone", None)
    return (
        "Status:\n"
        f"  Tasks: {len(c.tasks)} ({done} completed)\n"
        f"  Poll interval: {getattr(state.settings, 'poll_interval_seconds', '?')}s\n"
        f"  Notifications: {'ON' if state.dispatcher is not None else 'OFF'} "
        f"(permission: {state.permission.value})\n"
        f"  Time zone: {tz if tz is not None else 'system'}"
    )


def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks          -> all tasks
    /tasks <group>  -> tasks of one group
    """
    c = state.controller.collection
    now = state.clock.now()
    tz = getattr(state.settings, "timezone", None)

    groups = sorted(c.groups, key=lambda g: g.order)
    if args:
        wanted = args[0].lower()
        groups = [g for g in groups if g.id.lower() == wanted or g.name.lower() == wanted]
        if not groups:
            return f"No group {args[0]!r}."

    lines: list[str] = []
    for g in groups:
        tasks = sorted((t for t in c.tasks if t.group_id == g.id), key=lambda t: t.order)
        if not tasks:
            continue
        lines.append(f"{g.name}:")
        for t in tasks:
            mark = "x" if t.is_completed else " "
            extra = f"next {_fmt_dt(state, state.controller.next_occurrence_for(t))}"
            if g.enable_due_dates and t.due_date is not None:
                extra = format_due_date(t.due_date, now, tz)
            lines.append(f"  [{mark}] {t.id}  {t.title}  ({recurrence_label(t.recurrence)}; {extra})")
    return "\n".join(lines) if lines else "No tasks."


def cmd_done(state: AppState, args: list[str]) -> str:
    """/done <task_id> [profile_id]"""
    if not args:
        return "Usage: /done <task_id> [profile_id]"
    profile_id = args[1] if len(args) > 1 else state.controller.collection.active_profile_id
    task = state.call(state.controller.complete(args[0], profile_id))
    return f"Completed: {task.title}"


def cmd_undo(state: AppState, args: list[str]) -> str:
    """/undo <task_id> -> uncheck, history kept"""
    if not args:
        return "Usage: /undo <task_id>"
    profile_id = state.controller.collection.active_profile_id
    task = state.call(state.controller.uncheck(args[0], profile_id))
    return f"Unchecked: {task.title}"


def cmd_reset(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /reset <task_id>"
    task = state.call(state.controller.reset(args[0]))
    return f"Reset: {task.title} (history kept)"


def cmd_restore(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /restore <task_id>"
    task = state.call(state.controller.restore(args[0]))
    return f"Restored: {task.title} (history removed)"


def cmd_history(state: AppState, args: list[str]) -> str:
    """/history [n] -> newest n entries (default 10)"""
    try:
        limit = int(args[0]) if args else 10
    except ValueError:
        return "Usage: /history [n]"
    entries = state.controller.collection.history[: max(1, limit)]
    if not entries:
        return "No history yet."
    lines = ["History (newest first):"]
    for h in entries:
        lines.append(f"  {_fmt_dt(state, h.timestamp)}  {h.action.value:<10} {h.task_title}  ({h.profile_name})")
    return "\n".join(lines)


def cmd_check(state: AppState, args: list[str]) -> str:
    """Run one reset + reminder pass now."""
    before = len(state.controller.collection.history)
    state.permission = state.call(run_tick(state.controller, state.dispatcher, state.permission))
    resets = len(state.controller.collection.history) - before
    return f"Check done: {resets} task(s) reset; notification permission {state.permission.value}."


def cmd_stats(state: AppState, args: list[str]) -> str:
    """Last 14 days of history: totals, busiest weekday, profiles, most consistent tasks."""
    c = state.controller.collection
    s = history_stats(
        c.history, c.tasks, c.profiles, state.clock.now(), tz=getattr(state.settings, "timezone", None)
    )

    lines = [
        "Last 14 days:",
        f"  Completed: {s.completed}  Unchecked: {s.unchecked}  Reset: {s.reset}  Restored: {s.restored}",
        f"  This week: {s.this_week}  Last week: {s.last_week}  Change: {s.weekly_trend:+d}",
    ]
    if s.completed:
        lines.append(f"  Most productive day: {s.most_productive_day.day} ({s.most_productive_day.completions})")
        lines.append("  " + "  ".join(f"{d.day[:3]} {d.completions}" for d in s.by_weekday))

    if len(s.profiles) > 1:
        lines.append("Profiles:")
        for p in s.profiles:
            lines.append(
                f"  {p.profile.name}: {p.completions} completed, {p.unchecked} unchecked, {p.accuracy:.0f}% accuracy"
            )

    if s.most_consistent:
        lines.append("Most consistent:")
        for t in s.most_consistent:
            lines.append(f"  {t.task.title}: {t.consistency:.0f}% ({t.completions} completions)")
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show task counts and scheduler settings.")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks [group].", aliases=["ls"])
registry.register("done", cmd_done, help_text="Complete a task: /done <id> [profile].")
registry.register("undo", cmd_undo, help_text="Uncheck a task, keeping history: /undo <id>.")
registry.register("reset", cmd_reset, help_text="Reset a task to pending: /reset <id>.")
registry.register("restore", cmd_restore, help_text="Reset and drop its history: /restore <id>.")
registry.register("history", cmd_history, help_text="Show recent history: /history [n].")
registry.register("check", cmd_check, help_text="Run resets and reminders now.")
registry.register("stats", cmd_stats, help_text="Show completion stats for the last 14 days.")
