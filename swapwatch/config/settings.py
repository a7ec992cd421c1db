"""
Application settings assembled from the environment.

Typed view over config.env for the runtime entrypoint.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from swapwatch.config.env import get_stream_endpoint, get_strategy_preset, get_trades_dir


@dataclass(frozen=True)
class Settings:
    stream_endpoint: str | None
    trades_dir: Path
    strategy_preset: str


def get_settings(require_stream: bool = True) -> Settings:
    """
    Return the current application settings.

    Raises ConfigError when STREAM_ENDPOINT is missing or malformed, unless
    require_stream is False (offline commands such as --stats), in which
    case stream_endpoint is None.
    """
    return Settings(
        stream_endpoint=get_stream_endpoint() if require_stream else None,
        trades_dir=get_trades_dir(),
        strategy_preset=get_strategy_preset(),
    )
