# src/reminder_scheduler/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole service (normal "settings layer").
- No secrets required at import time.
- Components take settings (or plain arguments) injected at construction;
  only the entrypoint calls get_settings().
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

from dotenv import load_dotenv

ENV_PREFIX = "REMINDER"

logger = logging.getLogger(__name__)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv() -> None:
    """Load a local .env (if present) without overriding the real environment."""
    load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer in %s=%r; using %s", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid number in %s=%r; using %s", name, raw, default)
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path

    # ---- Kafka ----
    kafka_brokers: List[str]
    kafka_task_topic: str
    kafka_notification_topic: str
    kafka_group_id: str
    kafka_offset_reset: str

    # ---- Scanner / consumer ----
    scanner_enabled: bool
    consumer_enabled: bool
    scan_interval_seconds: float
    scan_batch_limit: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "reminder-scheduler")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/reminder"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")

        kafka_brokers = _env_list(_k("KAFKA_BROKERS"), ["localhost:9092"])
        kafka_task_topic = _env(_k("KAFKA_TASK_TOPIC"), "expense-tasks")
        kafka_notification_topic = _env(_k("KAFKA_NOTIFICATION_TOPIC"), "email-notifications")
        kafka_group_id = _env(_k("KAFKA_GROUP_ID"), "reminder-scheduler")
        kafka_offset_reset = _env(_k("KAFKA_OFFSET_RESET"), "earliest")

        scanner_enabled = _env_bool(_k("SCANNER_ENABLED"), True)
        consumer_enabled = _env_bool(_k("CONSUMER_ENABLED"), True)
        scan_interval_seconds = max(1.0, _env_float(_k("SCAN_INTERVAL_SECONDS"), 60.0))
        scan_batch_limit = max(1, _env_int(_k("SCAN_BATCH_LIMIT"), 500))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            kafka_brokers=kafka_brokers,
            kafka_task_topic=kafka_task_topic,
            kafka_notification_topic=kafka_notification_topic,
            kafka_group_id=kafka_group_id,
            kafka_offset_reset=kafka_offset_reset,
            scanner_enabled=scanner_enabled,
            consumer_enabled=consumer_enabled,
            scan_interval_seconds=scan_interval_seconds,
            scan_batch_limit=scan_batch_limit,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, loaded (and .env read) on first use."""
    global _SETTINGS
    if _SETTINGS is None:
        _load_dotenv()
        _SETTINGS = Settings.from_env()
    return _SETTINGS
