"""
Strategy thresholds and named presets.

Each historical bot variant is a preset of the same StrategyConfig rather
than its own code path.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from swapwatch.core.exceptions import ConfigError

DEFAULT_VOLUME_SPIKE_MULTIPLIER = 1.5
DEFAULT_MIN_VOLUME = 500.0
DEFAULT_PRICE_CHANGE_THRESHOLD = 0.01
DEFAULT_PROFIT_TARGET = 0.05
DEFAULT_STOP_LOSS = 0.02
DEFAULT_EARLY_EXIT_PROFIT = 0.02
DEFAULT_MAX_HOLD_SEC = 30.0
DEFAULT_COOLDOWN_SEC = 15.0
DEFAULT_FIXED_TOKEN_AMOUNT = 1000.0
DEFAULT_MAX_POSITION_SIZE = 1000.0
DEFAULT_TREND_WINDOW = 3
DEFAULT_MIN_BUY_PRESSURE = 0.65
DEFAULT_BUY_PRESSURE_LOOKBACK = 10
DEFAULT_PRICE_MOVEMENT_LOOKBACK = 3
DEFAULT_INITIAL_BALANCE = 10_000.0
DEFAULT_PRICE_DATA_WINDOW_SEC = 300.0


class SizingPolicy(str, Enum):
    FIXED = "fixed"
    """Buy fixed_token_amount tokens regardless of wallet balance."""
    PROPORTIONAL = "proportional"
    """Spend min(max_position_size, wallet balance) at the current price."""


@dataclass(frozen=True)
class StrategyConfig:
    """Thresholds for the FLAT/LONG state machine. Fractions, not percents."""

    volume_spike_multiplier: float = DEFAULT_VOLUME_SPIKE_MULTIPLIER
    min_volume: float = DEFAULT_MIN_VOLUME
    """1-minute notional volume floor for entries."""
    price_change_threshold: float = DEFAULT_PRICE_CHANGE_THRESHOLD
    """Minimum short-horizon move for entries; also the reversal leg size."""
    profit_target: float = DEFAULT_PROFIT_TARGET
    stop_loss: float = DEFAULT_STOP_LOSS
    early_exit_profit: float = DEFAULT_EARLY_EXIT_PROFIT
    """Profit taken early when no uptrend is confirmed."""
    max_hold_seconds: float = DEFAULT_MAX_HOLD_SEC
    cooldown_seconds: float = DEFAULT_COOLDOWN_SEC
    sizing: SizingPolicy = SizingPolicy.FIXED
    fixed_token_amount: float = DEFAULT_FIXED_TOKEN_AMOUNT
    max_position_size: float = DEFAULT_MAX_POSITION_SIZE
    trend_window: int = DEFAULT_TREND_WINDOW
    min_buy_pressure: float = DEFAULT_MIN_BUY_PRESSURE
    buy_pressure_lookback: int = DEFAULT_BUY_PRESSURE_LOOKBACK
    price_movement_lookback: int = DEFAULT_PRICE_MOVEMENT_LOOKBACK
    initial_balance: float = DEFAULT_INITIAL_BALANCE
    price_data_window: float = DEFAULT_PRICE_DATA_WINDOW_SEC
    """Seconds of samples kept for averages, momentum and trend."""

    def __post_init__(self) -> None:
        if self.trend_window < 2:
            raise ValueError("trend_window must be at least 2")
        if self.price_movement_lookback < 2:
            raise ValueError("price_movement_lookback must be at least 2")
        if self.buy_pressure_lookback < 1:
            raise ValueError("buy_pressure_lookback must be positive")
        if self.price_data_window <= 0:
            raise ValueError("price_data_window must be positive")
        if self.fixed_token_amount <= 0 or self.max_position_size <= 0:
            raise ValueError("position sizes must be positive")
        if self.stop_loss <= 0 or self.profit_target <= 0:
            raise ValueError("stop_loss and profit_target must be positive")


PRESETS: dict[str, StrategyConfig] = {
    "scalper": StrategyConfig(),
    "spike_hunter": StrategyConfig(
        volume_spike_multiplier=3.0,
        sizing=SizingPolicy.PROPORTIONAL,
    ),
}


def get_preset(name: str, **overrides: object) -> StrategyConfig:
    """Return a named preset, optionally with field overrides."""
    key = (name or "").strip().lower()
    if key not in PRESETS:
        raise ConfigError(f"Unknown strategy preset {name!r}; expected one of {sorted(PRESETS)}")
    config = PRESETS[key]
    return replace(config, **overrides) if overrides else config
