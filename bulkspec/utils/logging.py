"""Logging for generated bulk statements.

Every builder reports the statement it produced as a :class:`StatementEvent`
through :func:`log_statement`. Loggers live under the ``bulkspec`` namespace
and carry the correlation ID of the bulk operation in progress, so a structured
log line can be traced back to the import or sync job that generated it.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import msgspec

if TYPE_CHECKING:
    from logging import LogRecord

__all__ = (
    "CorrelationIDFilter",
    "StatementEvent",
    "StructuredFormatter",
    "configure_logging",
    "correlation_id_var",
    "format_statement_event",
    "get_correlation_id",
    "get_logger",
    "log_statement",
    "log_with_context",
    "set_correlation_id",
)

ROOT_LOGGER_NAME = "bulkspec"
SQL_TRUNCATION_LENGTH = 2000

correlation_id_var: ContextVar[str | None] = ContextVar("bulkspec_correlation_id", default=None)

_json_encoder = msgspec.json.Encoder()


def set_correlation_id(correlation_id: str | None) -> None:
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


@dataclass(slots=True)
class StatementEvent:
    """A statement produced by one of the bulk builders."""

    sql: str
    dialect: str
    operation: str
    table: str
    correlation_id: str | None

    def as_dict(self) -> dict[str, Any]:
        """Return the event as structured log fields, truncating long SQL."""
        sql = self.sql
        if len(sql) > SQL_TRUNCATION_LENGTH:
            sql = f"{sql[:SQL_TRUNCATION_LENGTH]}..."
        fields: dict[str, Any] = {
            "db.system": self.dialect,
            "bulk.operation": self.operation,
            "db.table": self.table,
            "db.statement": sql,
        }
        if self.correlation_id:
            fields["correlation_id"] = self.correlation_id
        return fields


def format_statement_event(event: StatementEvent) -> str:
    """Create a concise human-readable line for a statement event."""
    return f"[{event.dialect}] {event.operation} {event.table}"


class StructuredFormatter(logging.Formatter):
    """JSON formatter that merges the record's structured fields into the entry."""

    def format(self, record: LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id:
            log_entry["correlation_id"] = correlation_id
        log_entry.update(getattr(record, "extra_fields", {}))
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return _json_encoder.encode(log_entry).decode("utf-8")


class CorrelationIDFilter(logging.Filter):
    """Copy the current correlation ID onto every record."""

    def filter(self, record: LogRecord) -> bool:
        if correlation_id := get_correlation_id():
            record.correlation_id = correlation_id  # type: ignore[attr-defined]
        return True


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger under the ``bulkspec`` namespace.

    Args:
        name: Logger name, with or without the ``bulkspec.`` prefix. If not
            provided, returns the root bulkspec logger.

    Returns:
        Logger carrying a :class:`CorrelationIDFilter`.
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIDFilter) for f in logger.filters):
        logger.addFilter(CorrelationIDFilter())
    return logger


def configure_logging(
    level: str = "INFO", format_style: str = "structured", extra_handlers: list[logging.Handler] | None = None
) -> None:
    """Install a stdout handler on the ``bulkspec`` logger.

    Args:
        level: Logging level name.
        format_style: ``"structured"`` for JSON lines, anything else for plain text.
        extra_handlers: Additional handlers to attach.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    formatter: logging.Formatter
    if format_style == "structured":
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
    for handler in extra_handlers or ():
        root_logger.addHandler(handler)
    root_logger.propagate = False


def log_with_context(logger: logging.Logger, level: int, message: str, **extra_fields: Any) -> None:
    """Log ``message`` with structured fields picked up by :class:`StructuredFormatter`."""
    if logger.isEnabledFor(level):
        logger.log(level, message, extra={"extra_fields": extra_fields}, stacklevel=2)


def log_statement(logger: logging.Logger, *, sql: str, dialect: str, operation: str, table: str) -> None:
    """Report a generated statement at DEBUG level."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    event = StatementEvent(
        sql=sql, dialect=dialect, operation=operation, table=table, correlation_id=get_correlation_id()
    )
    logger.debug(format_statement_event(event), extra={"extra_fields": event.as_dict()}, stacklevel=2)
