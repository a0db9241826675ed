"""Correlation ID logging context for tracing a visitor or lead across modules.

Provides a correlation-aware logger that attaches an ID (a journey session
id while the visitor is anonymous, a sequence id once follow-ups are
scheduled) to every log record.

Usage:
    from inquiry_engine.logging_context import get_inquiry_logger, set_correlation_id

    set_correlation_id("seq_teaching_1700000000000_ab12cd34")
    logger = get_inquiry_logger(__name__)
    logger.info("Scheduling follow-ups")  # record.correlation_id == "seq_teaching_..."
"""

import logging
from contextvars import ContextVar

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="NO_CORRELATION_ID")


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current context."""
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str:
    """Retrieve the current correlation ID."""
    return _correlation_id.get()


class CorrelationIdFilter(logging.Filter):
    """Injects correlation_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _correlation_id.get()  # type: ignore[attr-defined]
        return True


def install_correlation_filter(handler: logging.Handler) -> None:
    """Attach a CorrelationIdFilter to a handler, once.

    Handler filters see records from every logger, including plain
    ``logging.getLogger(__name__)`` ones, so a format using
    ``%(correlation_id)s`` never hits a record without the attribute.
    """
    if not any(isinstance(f, CorrelationIdFilter) for f in handler.filters):
        handler.addFilter(CorrelationIdFilter())


def get_inquiry_logger(name: str) -> logging.Logger:
    """Return a logger with the CorrelationIdFilter attached.

    The filter adds ``correlation_id`` to each record so formatters can
    include ``%(correlation_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())
    return logger
