from __future__ import annotations

import logging
import sys
import uuid
from typing import TextIO

from loguru import logger as loguru_logger

# Standard LogRecord attributes that never go into the structured payload
_STANDARD_FIELDS = frozenset(
    {
        "args",
        "msg",
        "name",
        "levelno",
        "levelname",
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
        "getMessage",
        "message",
    }
)

_NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler", "peewee")


class InterceptHandler(logging.Handler):
    """Forward stdlib records (and their ``extra`` fields) to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        level_to_use: int | str
        try:
            level_to_use = loguru_logger.level(record.levelname).name
        except ValueError:
            level_to_use = record.levelno

        loguru_logger.bind(**record_extra(record)).opt(depth=6, exception=record.exc_info).log(
            level_to_use, record.getMessage()
        )


def record_extra(record: logging.LogRecord) -> dict[str, object]:
    """The ``extra={...}`` fields attached to a stdlib record."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if not key.startswith("_") and key not in _STANDARD_FIELDS
    }


def setup_json_logging(
    level: str = "INFO",
    log_file: str | None = None,
    max_file_size: str = "50 MB",
    retention: str = "14 days",
    stream: TextIO | None = None,
) -> None:
    """Route all logging through loguru JSON sinks.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path for persistent logging
        max_file_size: Maximum size per log file (loguru format)
        retention: Log retention period (loguru format)
        stream: Console stream (defaults to stdout)

    """
    lvl = getattr(logging, level.upper(), logging.INFO)
    stream = stream or sys.stdout

    loguru_logger.remove()
    loguru_logger.add(
        stream,
        level=level.upper(),
        serialize=True,
        enqueue=True,
        backtrace=True,
        diagnose=False,
    )
    if log_file:
        loguru_logger.add(
            log_file,
            level=level.upper(),
            serialize=True,
            rotation=max_file_size,
            retention=retention,
            compression="gz",
            enqueue=True,
        )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(lvl)
    root.addHandler(InterceptHandler())

    for noisy_logger in _NOISY_LOGGERS:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "json_logging_initialized",
        extra={"setup_config": {"level": level, "log_file": log_file}},
    )


def generate_correlation_id() -> str:
    """Generate a short correlation ID for tracing a sync cycle across logs and results."""
    return uuid.uuid4().hex[:12]


__all__ = [
    "InterceptHandler",
    "generate_correlation_id",
    "record_extra",
    "setup_json_logging",
]
