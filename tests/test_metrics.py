"""
Tests for MetricsAggregator and MetricWindow: side detection, pricing,
event-time pruning and the retained-sample invariant.
"""

from __future__ import annotations

import random

import pytest

from conftest import MINT, OTHER_MINT, T0
from swapwatch.analysis_engine.metrics import (
    WINDOW_1H,
    WINDOW_1M,
    WINDOW_5M,
    MarketConstants,
    MetricsAggregator,
    MetricWindow,
    display_price,
    event_time_seconds,
)
from swapwatch.decoding.interface import Side


def test_other_mint_is_noop(make_trade):
    """Events without the tracked mint on either leg change nothing."""
    agg = MetricsAggregator(MINT)
    assert agg.observe(make_trade(mint=OTHER_MINT), now=T0) is None
    assert all(not w.samples for w in agg.windows.values())
    assert agg.last_price is None


def test_buy_snapshot_price_and_notional(make_trade):
    """1000 tokens for 2 SOL at 130 USD/SOL: price 0.26, notional 260, market cap 0.26 * 1e9."""
    agg = MetricsAggregator(MINT)
    snap = agg.observe(make_trade(Side.BUY, tokens=1000, quote=2, timestamp=T0, signature="s1"), now=T0)
    assert snap is not None
    assert snap.side is Side.BUY
    assert snap.token_amount == pytest.approx(1000)
    assert snap.quote_amount == pytest.approx(2)
    assert snap.price == pytest.approx(0.26)
    assert snap.notional == pytest.approx(260)
    assert snap.market_cap == pytest.approx(0.26e9)
    assert snap.volume_1m == pytest.approx(260)
    assert snap.volume_5m == pytest.approx(260)
    assert snap.volume_1h == pytest.approx(260)
    assert snap.timestamp == T0
    assert snap.signature == "s1"


def test_sell_side_when_tracked_mint_is_input(make_trade):
    agg = MetricsAggregator(MINT)
    snap = agg.observe(make_trade(Side.SELL, tokens=500, quote=1), now=T0)
    assert snap.side is Side.SELL
    assert snap.price == pytest.approx(0.26)


def test_zero_token_amount_is_skipped(make_trade):
    agg = MetricsAggregator(MINT)
    assert agg.observe(make_trade(tokens=0, quote=1), now=T0) is None


def test_tiny_price_kept_in_exponential_form(make_trade):
    """Prices below 1e-8 survive as 9-significant-digit floats rather than rounding to zero."""
    agg = MetricsAggregator(MINT)
    snap = agg.observe(make_trade(tokens=1_000_000_000, quote=1e-9), now=T0)
    assert 0 < snap.price < 1e-8
    assert snap.price == float(f"{snap.price:.8e}")
    assert display_price(1e-9, 1e9, MarketConstants()) == pytest.approx(1.3e-16)


def test_windows_prune_by_event_time(make_trade):
    """At now=T0+90 the T0 sample is outside 1m (90s) but the T0+30 one is exactly on the edge."""
    agg = MetricsAggregator(MINT, MarketConstants(quote_usd_rate=1.0))
    agg.observe(make_trade(tokens=1000, quote=1000, timestamp=T0), now=T0)
    agg.observe(make_trade(tokens=1000, quote=1000, timestamp=T0 + 30), now=T0 + 30)
    snap = agg.observe(make_trade(tokens=1000, quote=1000, timestamp=T0 + 90), now=T0 + 90)
    assert snap.volume_1m == pytest.approx(2000)
    assert snap.volume_5m == pytest.approx(3000)
    assert snap.volume_1h == pytest.approx(3000)
    assert [ts for ts, _ in agg.windows[WINDOW_1M].samples] == [T0 + 30, T0 + 90]


def test_out_of_order_event_credited_if_inside_horizon(make_trade):
    """A late event still lands in a window when its own timestamp is within the horizon of now."""
    agg = MetricsAggregator(MINT, MarketConstants(quote_usd_rate=1.0))
    now = T0 + 100
    agg.observe(make_trade(tokens=1000, quote=1000, timestamp=now), now=now)
    late = agg.observe(make_trade(tokens=1000, quote=1000, timestamp=T0 + 50), now=now)
    assert late.volume_1m == pytest.approx(2000)
    too_late = agg.observe(make_trade(tokens=1000, quote=1000, timestamp=T0 + 30), now=now)
    assert too_late.volume_1m == pytest.approx(2000)
    assert too_late.volume_5m == pytest.approx(3000)


def test_millisecond_timestamps_converted(make_trade):
    assert event_time_seconds(1_700_000_000_500) == 1_700_000_000
    assert event_time_seconds(1_700_000_000) == 1_700_000_000
    agg = MetricsAggregator(MINT)
    snap = agg.observe(make_trade(timestamp=(T0 + 5) * 1000), now=T0 + 5)
    assert snap.timestamp == T0 + 5
    assert snap.volume_1m > 0


def test_window_invariant_holds_for_random_sequences():
    """After every insert, retained samples are within the horizon and the total is their sum."""
    rng = random.Random(7)
    for horizon in (WINDOW_1M, WINDOW_5M, WINDOW_1H):
        window = MetricWindow(horizon=horizon)
        now = float(T0)
        for _ in range(300):
            now += rng.uniform(0, 40)
            ts = now - rng.uniform(0, horizon * 1.5)
            window.add(ts, rng.uniform(0, 1000), now)
            assert all(now - t <= horizon for t, _ in window.samples)
            assert window.total(now) == pytest.approx(sum(v for _, v in window.samples))


def test_prune_is_idempotent():
    window = MetricWindow(horizon=60, samples=[(T0, 1.0), (T0 + 50, 2.0), (T0 + 10, 3.0)])
    window.prune(T0 + 65)
    once = list(window.samples)
    window.prune(T0 + 65)
    assert window.samples == once == [(T0 + 50, 2.0), (T0 + 10, 3.0)]
