"""Logging setup with correlation ids, secret redaction and JSON output.

Every dispatch runs under a correlation id (the notification record id, or
the queue message id inside the consumer) kept in a ContextVar, so the log
lines of concurrent fan-out tasks can be tied back to one notification.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any, Final, override

from qa_notify.utils.sanitization import sanitize_args, sanitize_value

correlation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id",
    default=None,
)

DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] - %(message)s"

# LogRecord attributes that are not "extra" context
_STANDARD_ATTRS: Final[frozenset[str]] = frozenset({
    "name", "msg", "args", "created", "filename", "funcName", "levelname",
    "levelno", "lineno", "module", "msecs", "pathname", "process",
    "processName", "relativeCreated", "thread", "threadName", "exc_info",
    "exc_text", "stack_info", "taskName", "message", "asctime", "correlation_id",
})


class CorrelationIDFilter(logging.Filter):
    """Copies the current correlation id onto every record."""

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        correlation_id = correlation_id_var.get()
        record.correlation_id = correlation_id if correlation_id is not None else "N/A"
        return True


class SecretRedactingFilter(logging.Filter):
    """Redacts credentials from the message, its args and extra fields."""

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            sanitized_msg = sanitize_value(record.msg)
            if isinstance(sanitized_msg, str):
                record.msg = sanitized_msg

        if record.args and isinstance(record.args, tuple):
            record.args = sanitize_args(record.args)

        for attr_name in list(record.__dict__):
            if attr_name in _STANDARD_ATTRS or attr_name.startswith("_"):
                continue
            attr_value: object = getattr(record, attr_name)  # pyright: ignore[reportAny]
            setattr(record, attr_name, sanitize_value(attr_value, field_name=attr_name))

        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, including any extra fields."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():  # pyright: ignore[reportAny]
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                log_data[key] = value

        return json.dumps(log_data, default=str, ensure_ascii=False)


def configure_logging(
    *,
    log_level: str = "INFO",
    log_format: str = "text",
    enable_console: bool = True,
) -> None:
    """Configure root logging.

    Args:
        log_level: Logging level name
        log_format: ``text`` for human-readable lines, ``json`` for structured output
        enable_console: Attach a stdout handler
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    if not enable_console:
        root_logger.addHandler(logging.NullHandler())
        return

    handler = logging.StreamHandler(sys.stdout)
    if log_format == "json":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
    handler.addFilter(CorrelationIDFilter())
    handler.addFilter(SecretRedactingFilter())
    root_logger.addHandler(handler)

    # aio-pika and aiormq are chatty at INFO
    for noisy in ("aiormq", "aio_pika"):
        logging.getLogger(noisy).setLevel(max(logging.WARNING, root_logger.level))


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation id for the current context."""
    _ = correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    """Get the correlation id of the current context."""
    return correlation_id_var.get()


def clear_correlation_id() -> None:
    """Clear the correlation id of the current context."""
    _ = correlation_id_var.set(None)


@contextmanager
def correlation_scope(correlation_id: str) -> Iterator[str]:
    """Run a block under a correlation id, restoring the previous one after.

    Example:
        >>> with correlation_scope(record.id):
        ...     await manager.notify(payload)
    """
    token = correlation_id_var.set(correlation_id)
    try:
        yield correlation_id
    finally:
        correlation_id_var.reset(token)
