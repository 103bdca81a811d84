# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Structured JSON logging: one JSON object per line on stdout.

Context passed through `extra=` (request, group, member or draft ids) is
copied into the record so log lines can be filtered per group.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from rosca.core.config import settings

CONTEXT_FIELDS: tuple[str, ...] = ("request_id", "group_id", "member_id", "draft_id")

_handler: logging.Handler | None = None


class JSONFormatter(logging.Formatter):
    """Render a LogRecord as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": settings.SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info and record.exc_info[1]:
            exc = record.exc_info[1]
            payload["error"] = str(exc)
            payload["error_type"] = type(exc).__name__
            code = getattr(exc, "code", None)
            if code:
                payload["error_code"] = code
        return json.dumps(payload, default=str)


def _shared_handler() -> logging.Handler:
    global _handler
    if _handler is None:
        _handler = logging.StreamHandler(sys.stdout)
        _handler.setFormatter(JSONFormatter())
    return _handler


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger writing JSON lines, level taken from LOG_LEVEL."""
    logger = logging.getLogger(name or settings.SERVICE_NAME)
    if _shared_handler() not in logger.handlers:
        logger.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))
        logger.addHandler(_shared_handler())
        logger.propagate = False
    return logger
