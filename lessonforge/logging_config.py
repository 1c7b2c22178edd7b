"""
Logging setup for LessonForge.

Production writes one JSON object per line; development writes short text
lines. Either way each record carries the id of the request it was logged in
(set by RequestIdMiddleware through ``request_id_var``), and ``extra=`` fields
such as ``lesson_plan_id`` or ``topic`` end up in the JSON output.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from lessonforge.config import Settings

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Attributes every LogRecord has; anything else came in through extra=.
_BUILTIN_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "request_id"}

# Libraries whose INFO output drowns the application's own.
_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "openai", "aiosqlite")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": record.request_id,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        for key, value in vars(record).items():
            if key not in _BUILTIN_ATTRS and value is not None:
                entry[key] = value
        return json.dumps(entry, default=str)


def configure_logging(settings: Settings) -> None:
    """Install the single stderr handler on the root logger (replacing any earlier one)."""
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(RequestIdFilter())
    if settings.environment == "production":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-5s [%(name)s] req=%(request_id)s %(message)s", "%H:%M:%S")
        )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
