# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Structured logging: one JSON object per line on stdout.

Every module logger is a child of the `schedule_sync` logger, which owns the
single handler. Context passed through `extra=` becomes top-level keys.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from schedule_sync.core.config import settings

ROOT_LOGGER = "schedule_sync"

CONTEXT_FIELDS: tuple[str, ...] = ("request_id", "schedule_id", "policy_id", "action")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": settings.SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value
        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            entry["error"] = str(exc)
            entry["error_type"] = type(exc).__name__
            if exc.__cause__ is not None:
                entry["cause"] = f"{type(exc.__cause__).__name__}: {exc.__cause__}"
        return json.dumps(entry, default=str)


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)
        level = logging.getLevelName(settings.LOG_LEVEL.upper())
        root.setLevel(level if isinstance(level, int) else logging.INFO)
        root.propagate = False
    return root


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger under the service root; `get_logger(__name__)` in every module."""
    root = _configure_root()
    if not name or name == ROOT_LOGGER:
        return root
    if name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return root.getChild(name)
