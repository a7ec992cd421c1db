"""
Structured logging for swapwatch.

JSON logs with timestamp, event_type and per-session context.
"""

from swapwatch.swapwatch_logging.logger import (
    bind_session_context,
    clear_session_context,
    configure_structlog,
    get_logger,
    short_address,
)

__all__ = [
    "bind_session_context",
    "clear_session_context",
    "configure_structlog",
    "get_logger",
    "short_address",
]
