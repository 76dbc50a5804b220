"""
Structured logging for lifelog.

Log lines are JSON by default. Commands log through get_logger() with the
idempotency key as trace_id, so every line a retried command produced can be
found by its key.

Environment Variables:
    LIFELOG_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR - default: INFO
    LIFELOG_LOG_FORMAT: json or text - default: json

Usage:
    from lifelog.logging_config import setup_logging, get_logger

    setup_logging()
    log = get_logger(__name__, trace_id="k-123", command="logHabit")
    log.info("appended %d event(s)", 1)
"""

import logging
import os
import sys
from typing import Any, Optional

from pythonjsonlogger import jsonlogger

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

JSON_FIELDS = "%(asctime)s %(name)s %(levelname)s %(message)s %(trace_id)s"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s [trace_id=%(trace_id)s]"


def _level_from_env() -> int:
    name = os.getenv("LIFELOG_LOG_LEVEL", "INFO").upper()
    return getattr(logging, name) if name in LEVELS else logging.INFO


def build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "text":
        return logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    # extra fields (command, query, ...) are appended to the JSON object as-is
    return jsonlogger.JsonFormatter(
        JSON_FIELDS,
        rename_fields={"asctime": "timestamp", "name": "logger", "levelname": "level"},
    )


def setup_logging() -> None:
    """Replace the root handlers with one stderr handler configured from the environment."""
    level = _level_from_env()
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(TraceIDFilter())
    handler.setFormatter(build_formatter(os.getenv("LIFELOG_LOG_FORMAT", "json").lower()))
    root_logger.addHandler(handler)


def get_logger(name: str, trace_id: Optional[str] = None, **context: Any) -> logging.LoggerAdapter:
    """
    Logger carrying a trace_id (usually the idempotency key) and any extra
    context fields on every record.
    """
    extra = dict(context)
    extra["trace_id"] = trace_id or "N/A"
    return logging.LoggerAdapter(logging.getLogger(name), extra)


class TraceIDFilter(logging.Filter):
    """Give records logged outside a command a trace_id of "N/A"."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = "N/A"  # type: ignore
        return True
