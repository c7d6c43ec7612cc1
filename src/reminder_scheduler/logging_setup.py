# src/reminder_scheduler/logging_setup.py

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

LOG_FILE_NAME = "scheduler.log"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the service console readable:
    - allow reminder_scheduler logs
    - but keep the Kafka connector (one line per send/commit) at WARNING+
    - show Kafka client warnings (aiokafka / kafka), they usually mean a broker problem
    - suppress Python warnings (captured as 'py.warnings') unless ERROR+
    - suppress any other third-party noise unless ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith("reminder_scheduler."):
            if name.startswith("reminder_scheduler.connectors."):
                return record.levelno >= logging.WARNING
            return True

        if name.startswith(("aiokafka", "kafka")):
            return record.levelno >= logging.WARNING

        if name == "py.warnings":
            return record.levelno >= logging.ERROR

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/reminder",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> Path:
    """
    Configure root logging for the service and return the log file path.

    Console gets the filtered view above; the rotating file under `log_dir`
    gets everything at `file_level`. Calling it again replaces the handlers.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    # aiokafka logs every rebalance and metadata refresh at DEBUG.
    logging.getLogger("aiokafka").setLevel(logging.INFO)
    return log_file
