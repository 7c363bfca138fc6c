# src/taskcycle/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Loggers that only reach the console at WARNING+ (they run on the
# background scheduler thread and would interleave with the REPL prompt).
_BACKGROUND_PREFIXES = (
    "taskcycle.tasks.task_scheduler",
    "taskcycle.tasks.task_store",
    "taskcycle.connectors.matrix_",
)


class _ConsoleFilter(logging.Filter):
    """
    Console view for interactive use:
    - taskcycle logs pass, background components only at WARNING+
    - everything else (nio, aiohttp, py.warnings) only at ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if not name.startswith("taskcycle."):
            return record.levelno >= logging.ERROR
        if name.startswith(_BACKGROUND_PREFIXES):
            return record.levelno >= logging.WARNING
        return True


def level_from_name(name: str | None, default: int = logging.INFO) -> int:
    """'debug' -> logging.DEBUG; unknown names fall back to `default`."""
    value = logging.getLevelName(str(name or "").strip().upper())
    return value if isinstance(value, int) else default


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskcycle",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Configure root logging once, before the scheduler thread starts.

    - stderr: filtered, for the console REPL
    - <log_dir>/taskcycle.log: everything at `file_level`
    - <log_dir>/reminders.log: dispatcher records (one line per reminder)

    Returns the main log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleFilter())
    root.addHandler(console)

    main_file = log_dir / "taskcycle.log"
    fh = logging.FileHandler(str(main_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    audit = logging.FileHandler(str(log_dir / "reminders.log"), encoding="utf-8")
    audit.setLevel(logging.INFO)
    audit.setFormatter(logging.Formatter("%(asctime)s %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
    audit.addFilter(logging.Filter("taskcycle.notifications.dispatcher"))
    root.addHandler(audit)

    logging.captureWarnings(True)
    return main_file
