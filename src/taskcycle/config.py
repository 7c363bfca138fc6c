# src/taskcycle/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.

Environment variables (all prefixed TASKCYCLE_):
  APP_NAME                 display name (default: taskcycle)
  LOG_LEVEL                console log level (default: INFO)
  DATA_DIR                 local data directory (default: .local/taskcycle)
  USER_ID                  household document id -> user_<id>.json (default: 1)
  POLL_INTERVAL_SECONDS    reset/notification polling cadence (default: 1800)
  NOTIFICATIONS_ENABLED    evaluate and deliver reminders (default: true)
  NOTIFY_SUPPRESS_HOURS    hours between repeats of an overdue reminder (default: 6)
  TIMEZONE                 IANA zone for calendar rules (default: system zone)
  CONSOLE_ENABLED          interactive console (default: true)
  MATRIX_ENABLED           deliver reminders to a Matrix room (default: false)
  MATRIX_HOMESERVER, MATRIX_USER_ID, MATRIX_PASSWORD, MATRIX_ROOM_ID
  MATRIX_STORE_PATH        session store (default: <data_dir>/matrix_store)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "TASKCYCLE"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_tz(name: str) -> tzinfo | None:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return None
    try:
        return ZoneInfo(raw)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown time zone %r in %s; using the system zone", raw, name)
        return None


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Storage ----
    data_dir: Path
    user_id: str

    # ---- Scheduling ----
    poll_interval_seconds: float
    notifications_enabled: bool
    notify_suppress_hours: float
    timezone: tzinfo | None

    # ---- Connector flags ----
    console_enabled: bool
    matrix_enabled: bool

    # ---- Matrix ----
    matrix_homeserver: str
    matrix_user_id: str
    matrix_password: str
    matrix_room_id: str
    matrix_store_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskcycle") or "taskcycle"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskcycle"))
        user_id = _env(_k("USER_ID"), "1").strip() or "1"

        poll_interval_seconds = _env_float(_k("POLL_INTERVAL_SECONDS"), 1800.0)
        notifications_enabled = _env_bool(_k("NOTIFICATIONS_ENABLED"), True)
        notify_suppress_hours = _env_float(_k("NOTIFY_SUPPRESS_HOURS"), 6.0)
        timezone = _env_tz(_k("TIMEZONE"))

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        matrix_enabled = _env_bool(_k("MATRIX_ENABLED"), False)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            user_id=user_id,
            poll_interval_seconds=poll_interval_seconds,
            notifications_enabled=notifications_enabled,
            notify_suppress_hours=notify_suppress_hours,
            timezone=timezone,
            console_enabled=console_enabled,
            matrix_enabled=matrix_enabled,
            matrix_homeserver=_env(_k("MATRIX_HOMESERVER")).strip(),
            matrix_user_id=_env(_k("MATRIX_USER_ID")).strip(),
            matrix_password=_env(_k("MATRIX_PASSWORD")).strip(),
            matrix_room_id=_env(_k("MATRIX_ROOM_ID")).strip(),
            matrix_store_path=_env_path(_k("MATRIX_STORE_PATH"), data_dir / "matrix_store"),
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
