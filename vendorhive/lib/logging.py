"""
Structured logging for VendorHive.

Every record is stamped with the service name and, while a request is being
handled, the request's correlation id. Fields passed through ``extra=`` (or
``log_with_context``) are emitted as top-level JSON keys.
"""
import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Iterator, Optional

SERVICE_NAME = "vendorhive"

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Attributes every LogRecord carries; anything else came in through `extra=`
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = {
    "urllib3": logging.WARNING,
    "httpx": logging.WARNING,
    "botocore": logging.WARNING,
    "pymongo": logging.WARNING,
    "passlib": logging.ERROR,
}


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            entry["correlation_id"] = correlation_id

        for key, value in vars(record).items():
            if key == "extra_fields":
                entry.update(value)
            elif key not in _RESERVED_ATTRS and key not in entry:
                entry[key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines for local development, correlation id in brackets."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s [%(correlation_id)s] %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        record.correlation_id = get_correlation_id() or "-"
        return super().format(record)


def setup_logging(level: str = "INFO", json_format: bool = True) -> None:
    """
    Route all logging to stdout.

    Args:
        level: Root log level name; unknown names fall back to INFO
        json_format: JSON lines when True, plain text otherwise
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(JSONFormatter() if json_format else TextFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


def configure_logging(settings) -> None:
    """Apply the logging section of ``Settings``; debug mode forces DEBUG."""
    setup_logging(
        level="DEBUG" if settings.debug else settings.log_level,
        json_format=settings.log_json,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()


@contextmanager
def correlation_scope(correlation_id: str) -> Iterator[str]:
    """
    Bind ``correlation_id`` to log records emitted inside the block.

    The previous value is restored on exit, so nested scopes and
    concurrently handled requests do not leak ids into each other.
    """
    token = correlation_id_var.set(correlation_id)
    try:
        yield correlation_id
    finally:
        correlation_id_var.reset(token)


def log_with_context(logger: logging.Logger, level: str, message: str, **extra_fields) -> None:
    """
    Log ``message`` with ``extra_fields`` as structured context.

    Example:
        log_with_context(logger, "info", "Booking created", booking_id=7, vendor_id=2)
    """
    log_func = getattr(logger, level.lower())
    log_func(message, extra={"extra_fields": extra_fields})
