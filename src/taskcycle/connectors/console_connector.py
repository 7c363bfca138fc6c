# src/taskcycle/connectors/console_connector.py

from __future__ import annotations

import logging

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)

EXIT_COMMANDS = frozenset({"/exit", "/quit"})


def prompt_for(state: AppState) -> str:
    """'Alice (3 open)> ' style prompt from the active profile and pending count."""
    c = state.controller.collection
    profile = c.find_profile(c.active_profile_id)
    who = profile.name if profile is not None else "taskcycle"
    pending = sum(1 for t in c.tasks if not t.is_completed)
    return f"{who} ({pending} open)> "


def reply_for(state: AppState, line: str) -> str:
    """Reply text for one console line. Command errors are logged, not raised."""
    try:
        reply = command_registry.handle(state, line)
    except Exception:
        logger.exception("Command failed: %s", line)
        return "Command failed; see the log for details."
    if reply is None:
        return "Commands start with '/'. Use /help to list them."
    return reply


def run_console_loop(state: AppState) -> None:
    """Blocking REPL on the main thread. Returns on /exit, EOF or Ctrl+C."""
    logger.info("Console connector started.")
    print("Use /tasks to list tasks, /help for commands, /exit to quit.")

    while True:
        try:
            line = input(prompt_for(state)).strip()
        except (EOFError, KeyboardInterrupt):
            print()
            logger.info("Console input closed, exiting.")
            return

        if not line:
            continue
        if line.lower() in EXIT_COMMANDS:
            return
        print(reply_for(state, line))
