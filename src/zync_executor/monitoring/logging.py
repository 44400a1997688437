"""Console and structured JSON logging for zync-executor."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

CONSOLE_FORMAT = "%(asctime)s %(levelname)s %(message)s"

_QUIET_LOGGERS = ("web3", "urllib3", "aiohttp", "asyncio")


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def _configure_root(formatter: logging.Formatter, *, level: int, log_file: Path | None) -> None:
    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers to avoid duplicate output
    root.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_file))
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def setup_logging(*, debug: bool = False, log_file: Path | None = None) -> None:
    """Configure timestamped plain-text logging on the root logger."""
    level = logging.DEBUG if debug else logging.INFO
    _configure_root(logging.Formatter(CONSOLE_FORMAT), level=level, log_file=log_file)


def setup_structured_logging(
    *,
    log_file: Path | None = None,
    level: int = logging.INFO,
) -> None:
    """Configure the root logger with structured JSON output.

    Args:
        log_file: If provided, also write JSON logs to this file.
        level: Logging level (default INFO).
    """
    _configure_root(JSONFormatter(), level=level, log_file=log_file)
