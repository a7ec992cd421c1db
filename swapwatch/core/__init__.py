"""
Core utilities: exceptions shared across ingestion, strategy and ledger.
"""

from swapwatch.core.exceptions import (
    ConfigError,
    LedgerReadError,
    LedgerWriteError,
    ReconnectExhausted,
    StreamError,
    SwapwatchError,
)

__all__ = [
    "ConfigError",
    "LedgerReadError",
    "LedgerWriteError",
    "ReconnectExhausted",
    "StreamError",
    "SwapwatchError",
]
