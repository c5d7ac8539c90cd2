"""
Structured logging with correlation IDs.

Usage:
    from manymarkets.logging_config import setup_structured_logging, correlation_id_var

    setup_structured_logging()
    correlation_id_var.set("request-123")

Environment Variables:
    MANYMARKETS_LOG_LEVEL - Set log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

from __future__ import annotations

import json
import logging
import os
import sys
from contextvars import ContextVar
from typing import Optional

# Context var for correlation ID (set per request by the API middleware)
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "exc_info",
        "exc_text",
        "stack_info",
        "message",
        "taskName",
    }
)


class StructuredFormatter(logging.Formatter):
    """JSON formatter with correlation ID for structured logging.

    Each entry includes timestamp, level, logger name, message, correlation ID,
    and any extra fields passed through ``extra=``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": correlation_id_var.get(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_structured_logging(log_level: Optional[str] = None) -> None:
    """Configure the root logger for JSON output on stdout.

    Args:
        log_level: Logging level; defaults to MANYMARKETS_LOG_LEVEL or INFO
    """
    if log_level is None:
        log_level = os.environ.get("MANYMARKETS_LOG_LEVEL", "INFO")
    level = getattr(logging, log_level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())
    handler.setLevel(level)
    root_logger.addHandler(handler)
