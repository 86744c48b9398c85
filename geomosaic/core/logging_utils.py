"""Logging helpers for the geomosaic service."""

from __future__ import annotations

import datetime
import json
import logging
import sys
from typing import Any

_RESERVED = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
    }
)


def _timestamp() -> str:
    """Return the current UTC timestamp in ISO8601 format."""
    now = datetime.datetime.now(datetime.UTC)
    return now.isoformat(timespec="seconds").replace("+00:00", "Z")


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return non-standard LogRecord fields for JSON logging."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED
    }


class JsonFormatter(logging.Formatter):
    """Format log records as JSON objects (one per line)."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": _timestamp(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = _extra_fields(record)
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class HumanFormatter(logging.Formatter):
    """Format log records with a concise prefix and the mosaic path."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        mosaic = getattr(record, "mosaic", None)
        if mosaic:
            return f"[{mosaic}] {message}"
        return message


def configure_logging(
    level: str = "INFO",
    *,
    json_console: bool = False,
) -> logging.Logger:
    """Install a single stderr handler on the ``geomosaic`` logger.

    Args:
        level: Log level name for console output.
        json_console: Emit JSON lines instead of human readable text.

    Returns:
        The configured ``geomosaic`` logger.
    """
    logger = logging.getLogger("geomosaic")
    logger.handlers.clear()
    logger.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stderr)
    formatter: logging.Formatter
    if json_console:
        formatter = JsonFormatter()
    else:
        formatter = HumanFormatter("%(levelname)s %(name)s: %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger
