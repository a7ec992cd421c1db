"""
Structured logging for the trade pipeline.

Every record is a flat JSON object (or a console line with LOG_FORMAT=console):
event_type, level, ISO timestamp, the emitting module, plus whatever keyword
fields the call site passes. Per-session fields (tracked mint, preset) are
bound once through contextvars and merged into every record, including
records emitted from worker threads and asyncio tasks started afterwards.

Uses only Python stdlib logging and structlog; no swapwatch imports to avoid circular imports.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import IO, Any

import structlog

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "json"
_ADDRESS_FIELDS = ("mint", "scan_address", "signature")


def _env_level() -> int:
    name = (os.getenv("LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()
    return getattr(logging, name, logging.INFO)


def _env_format() -> str:
    return (os.getenv("LOG_FORMAT") or DEFAULT_LOG_FORMAT).strip().lower()


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Ensure timestamp is always present (ISO 8601, UTC)."""
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _normalize_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Rename structlog 'event' to event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


class _CurrentStderr:
    """File-like that resolves sys.stderr on every write (it may be swapped after configure)."""

    def write(self, text: str) -> int:
        return sys.stderr.write(text)

    def flush(self) -> None:
        sys.stderr.flush()


def configure_structlog(
    level: int | None = None,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """
    (Re)configure structlog. Arguments default to LOG_LEVEL / LOG_FORMAT from
    the process environment. Loggers already returned by get_logger keep the
    configuration they were created with.
    """
    fmt = fmt or _env_format()
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
        _normalize_event,
    ]
    if fmt == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=stream is None and sys.stderr.isatty()))
    else:
        processors.append(structlog.processors.JSONRenderer())
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level if level is not None else _env_level()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or _CurrentStderr()),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name, bound to the
    configuration active at call time.

        logger = get_logger(__name__)
        logger.info("paper_buy_executed", price="$0.001200000", amount=1000)
    """
    return structlog.get_logger(name).bind(logger=name)


def short_address(address: str | None, keep: int = 16) -> str:
    """Truncate an address or signature for log fields."""
    if not address:
        return ""
    return address[:keep] + "..." if len(address) > keep else address


def bind_session_context(**fields: Any) -> None:
    """Bind per-session fields to every subsequent record in this context."""
    for key in _ADDRESS_FIELDS:
        if isinstance(fields.get(key), str):
            fields[key] = short_address(fields[key])
    structlog.contextvars.bind_contextvars(**fields)


def clear_session_context() -> None:
    structlog.contextvars.clear_contextvars()
