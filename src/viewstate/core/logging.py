"""
Logging infrastructure for the viewstate engine.

Every module logs through ``logging.getLogger(__name__)`` under the
``viewstate`` namespace. Hosts that want output call ``setup_logging``:

- Console output: human-readable, one line per record
- File output: JSONL (one JSON object per line) with structured context

Structured context is attached with ``log_with_context`` and lands in the
``context`` key of the JSONL entry.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

ROOT_LOGGER_NAME = "viewstate"

# =============================================================================
# Formatters
# =============================================================================


class JSONLFormatter(logging.Formatter):
    """
    Formats log records as JSON Lines.

    Example output:
    {"timestamp":"2024-01-15T10:30:45.123Z","level":"WARNING","component":"orchestrator","message":"Fetch failed","context":{"view_id":"orders"}}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "component": getattr(record, "component", record.name),
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if context:
            entry["context"] = context

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output."""

    def format(self, record: logging.LogRecord) -> str:
        component = getattr(record, "component", record.name.rsplit(".", 1)[-1])
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        prefix = f"[{timestamp}] [{component}]"
        if record.levelno != logging.INFO:
            prefix = f"{prefix} {record.levelname}:"

        message = f"{prefix} {record.getMessage()}"
        context = getattr(record, "context", None)
        if context:
            details = " ".join(f"{k}={v}" for k, v in context.items())
            message = f"{message} ({details})"
        return message


# =============================================================================
# Logger Setup
# =============================================================================


_loggers: dict[str, logging.Logger] = {}


def setup_logging(
    log_dir: Path | str | None = None,
    level: int = logging.INFO,
    max_bytes: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
) -> logging.Logger:
    """
    Attach console (and optionally JSONL file) handlers to the package logger.

    Args:
        log_dir: Directory for ``viewstate.log``; no file handler when None
        level: Minimum log level
        max_bytes: Max size per log file before rotation
        backup_count: Number of backup files to keep

    Returns:
        The configured ``viewstate`` root logger
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ConsoleFormatter())
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            directory / "viewstate.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONLFormatter())
        file_handler.setLevel(level)
        root_logger.addHandler(file_handler)

    return root_logger


def get_logger(component: str) -> logging.Logger:
    """
    Get a logger that tags every record with a component name.

    Args:
        component: Component name (e.g., "orchestrator", "columns")
    """
    if component in _loggers:
        return _loggers[component]

    logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{component.lower().replace(' ', '_')}")

    class ComponentFilter(logging.Filter):
        def filter(self, record: logging.LogRecord) -> bool:
            if not hasattr(record, "component"):
                record.component = component
            return True

    logger.addFilter(ComponentFilter())
    _loggers[component] = logger
    return logger


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: dict[str, Any] | None = None,
    **kwargs: Any,
) -> None:
    """
    Log a message with structured context data.

    Args:
        logger: Logger instance
        level: Logging level (logging.INFO, logging.ERROR, etc.)
        message: Human-readable message
        context: Structured context data (included in JSONL output)
        **kwargs: Additional context items
    """
    extra = {"context": {**(context or {}), **kwargs}} if (context or kwargs) else {}
    logger.log(level, message, extra=extra)
