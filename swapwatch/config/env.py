"""
Environment variable loading and validation for swapwatch.

- STREAM_ENDPOINT: websocket endpoint of the transaction stream (required by the runtime)
- TRADES_DIR: directory for per-asset trade ledgers (default: current working directory)
- STRATEGY_PRESET: named StrategyConfig preset (default: scalper)
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from solders.pubkey import Pubkey

from swapwatch.core.exceptions import ConfigError

# Project root: config is swapwatch/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_STRATEGY_PRESET = "scalper"

# PumpSwap AMM program; the live scanner restricts decoding to this venue by default
PUMP_SWAP_PROGRAM_ID = "pAMMBay6oceH9fJKBRHGP5D4bD4sWpmSwMn52FMfXEA"
# Wrapped SOL mint (quote side of most pairs)
WSOL_MINT = "So11111111111111111111111111111111111111112"


def load_env() -> None:
    """Load .env from project root. Safe to call multiple times."""
    from dotenv import load_dotenv

    load_dotenv(_ENV_PATH)


def get_stream_endpoint() -> str:
    """Return STREAM_ENDPOINT; raise ConfigError when unset."""
    load_env()
    url = (os.getenv("STREAM_ENDPOINT") or "").strip()
    if not url:
        raise ConfigError("STREAM_ENDPOINT is not set")
    if not url.startswith(("ws://", "wss://")):
        raise ConfigError(f"STREAM_ENDPOINT must be a ws:// or wss:// URL, got {url[:32]!r}")
    return url


def get_trades_dir() -> Path:
    """Return TRADES_DIR as a Path; defaults to the current working directory."""
    load_env()
    raw = (os.getenv("TRADES_DIR") or "").strip()
    return Path(raw) if raw else Path.cwd()


def get_strategy_preset() -> str:
    load_env()
    return (os.getenv("STRATEGY_PRESET") or DEFAULT_STRATEGY_PRESET).strip().lower()


def validate_address(address: str, *, field_name: str = "address") -> str:
    """
    Return the stripped address if it parses as a Solana public key.
    Raises ConfigError otherwise.
    """
    value = (address or "").strip()
    try:
        Pubkey.from_string(value)
    except Exception as e:
        raise ConfigError(f"Invalid Solana {field_name}: {value!r}") from e
    return value


def masked_endpoint(url: str) -> str:
    """Hide an api-key query value for logging."""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url
