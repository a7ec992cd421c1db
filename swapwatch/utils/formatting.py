"""Human-readable formatting for prices, volumes and market caps in log output."""

from __future__ import annotations

PRICE_EPSILON = 1e-8


def format_price(price: float) -> str:
    if price < PRICE_EPSILON:
        return f"${price:.8e}"
    return f"${price:.9f}"


def format_volume(volume: float) -> str:
    if volume >= 1_000:
        return f"${volume / 1_000:.2f}K"
    return f"${volume:.2f}"


def format_market_cap(market_cap: float) -> str:
    if market_cap >= 1_000_000_000:
        return f"${market_cap / 1_000_000_000:.2f}B"
    if market_cap >= 1_000_000:
        return f"${market_cap / 1_000_000:.2f}M"
    if market_cap >= 1_000:
        return f"${market_cap / 1_000:.2f}K"
    return f"${market_cap:.2f}"
