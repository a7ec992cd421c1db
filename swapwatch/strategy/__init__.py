"""
Paper-trading strategy: thresholds, indicators and the FLAT/LONG engine.
"""

from swapwatch.strategy.config import PRESETS, SizingPolicy, StrategyConfig, get_preset
from swapwatch.strategy.engine import (
    Decision,
    ExitReason,
    PaperWallet,
    Position,
    StrategyEngine,
    StrategyState,
)

__all__ = [
    "Decision",
    "ExitReason",
    "PRESETS",
    "PaperWallet",
    "Position",
    "SizingPolicy",
    "StrategyConfig",
    "StrategyEngine",
    "StrategyState",
    "get_preset",
]
