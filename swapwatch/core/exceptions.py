"""
Application-level exceptions.

Stream and reconnect errors stay inside the ingestion layer; ledger errors
stay inside the ledger. Only ConfigError and ReconnectExhausted reach the
runtime entrypoint.
"""

from __future__ import annotations


class SwapwatchError(Exception):
    """Base class for all swapwatch errors."""


class ConfigError(SwapwatchError):
    """Missing or invalid configuration (endpoint, addresses, presets)."""


class StreamError(SwapwatchError):
    """Transport or protocol failure on the subscription stream."""


class ReconnectExhausted(SwapwatchError):
    """Raised when the stream client gives up after its bounded retry budget."""

    def __init__(self, attempts: int, last_error: BaseException | None = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error is not None else ""
        super().__init__(f"stream reconnect failed after {attempts} attempts{detail}")


class LedgerWriteError(SwapwatchError):
    """The trade ledger file could not be written."""


class LedgerReadError(SwapwatchError):
    """
    The trade ledger file exists but could not be used. `corrupt` is True when
    the bytes were read but are not a JSON array (retrying will not help).
    """

    def __init__(self, message: str, *, corrupt: bool = False) -> None:
        self.corrupt = corrupt
        super().__init__(message)
