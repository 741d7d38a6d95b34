"""
Logging utilities for MDB_ODM.

Adds a correlation id, held in a context variable, to log records so that
the middleware callbacks and driver calls of one logical request can be
followed across an asyncio application.
"""

import contextvars
import logging
import uuid
from datetime import datetime
from typing import Any

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def get_correlation_id() -> str | None:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Set a correlation ID in the current context.

    Args:
        correlation_id: Optional correlation ID (generates new one if None)

    Returns:
        The correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    _correlation_id.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    """Clear the correlation ID from context."""
    _correlation_id.set(None)


def get_logging_context(**extra: Any) -> dict[str, Any]:
    """Return the timestamp, correlation id and any extra fields for a record."""
    context: dict[str, Any] = {"timestamp": datetime.now().isoformat()}

    correlation_id = get_correlation_id()
    if correlation_id:
        context["correlation_id"] = correlation_id

    context.update(extra)
    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds the logging context to every record."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = get_logging_context(**kwargs.get("extra", {}))
        return msg, kwargs


def get_logger(name: str) -> ContextualLoggerAdapter:
    """Get a contextual logger (name is typically __name__)."""
    return ContextualLoggerAdapter(logging.getLogger(name), {})


def log_operation(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    level: int = logging.DEBUG,
    success: bool = True,
    duration_ms: float | None = None,
    **context: Any,
) -> None:
    """
    Log a database operation with structured context.

    Args:
        logger: Logger instance
        operation: Operation name (e.g. "query.one")
        level: Log level
        success: Whether the operation succeeded
        duration_ms: Operation duration in milliseconds
        **context: Additional context (collection, op_type, ...)
    """
    log_context = get_logging_context(operation=operation, success=success, **context)
    if duration_ms is not None:
        log_context["duration_ms"] = round(duration_ms, 2)

    message = f"Operation: {operation}" if success else f"Operation failed: {operation}"
    if duration_ms is not None:
        message += f" (duration: {duration_ms:.2f}ms)"

    logger.log(level, message, extra=log_context)
