"""
Pure indicator helpers over the strategy's in-memory sample history.

All functions take plain sequences and return numbers / booleans; they never
mutate their inputs.
"""

from __future__ import annotations

from typing import Sequence

from swapwatch.decoding.interface import Side


def average(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def ema(prices: Sequence[float], period: int) -> float:
    """Exponential moving average seeded with the first price."""
    if not prices:
        return 0.0
    multiplier = 2 / (period + 1)
    value = prices[0]
    for price in prices[1:]:
        value = (price - value) * multiplier + value
    return value


def is_uptrend(prices: Sequence[float], window: int) -> bool:
    """
    Price above the EMA of the last `window` prices, and the last window-1
    prices non-decreasing (higher lows).
    """
    if len(prices) < window:
        return False
    recent = list(prices[-window:])
    current = recent[-1]
    tail = recent[1:]
    higher_lows = all(b >= a for a, b in zip(tail, tail[1:]))
    return current > ema(recent, window) and higher_lows


def buy_pressure(sides: Sequence[Side], lookback: int) -> float:
    """Fraction of the last `lookback` trades that were buys."""
    recent = list(sides[-lookback:])
    if not recent:
        return 0.0
    return sum(1 for s in recent if s is Side.BUY) / len(recent)


def momentum(prices: Sequence[float]) -> float:
    """Latest minus earliest retained price."""
    if len(prices) < 2:
        return 0.0
    return prices[-1] - prices[0]


def price_movement(prices: Sequence[float], lookback: int) -> float:
    """Fractional change from the first to the last of the last `lookback` prices."""
    if len(prices) < lookback:
        return 0.0
    first = prices[-lookback]
    if first == 0:
        return 0.0
    return (prices[-1] - first) / first


def is_reversal(
    prices: Sequence[float],
    volumes: Sequence[float],
    threshold: float,
) -> bool:
    """
    Spike-and-fade over the last three samples: up more than `threshold`,
    then down more than `threshold`, with the latest 1m volume below the
    middle sample's.
    """
    if len(prices) < 3 or len(volumes) < 3:
        return False
    p0, p1, p2 = prices[-3:]
    _, v1, v2 = volumes[-3:]
    if p0 == 0 or p1 == 0:
        return False
    rose = (p1 - p0) / p0 > threshold
    fell = (p2 - p1) / p1 < -threshold
    return rose and fell and v2 < v1
