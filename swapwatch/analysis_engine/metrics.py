"""
Rolling trade metrics for one tracked mint.

Folds decoded trade events into price / market cap state and three rolling
notional-volume windows (1m, 5m, 1h). Windows are keyed on trade event time
and evaluated against a caller-supplied `now`; nothing here reads the wall
clock, so the same event sequence always yields the same snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from swapwatch.decoding.interface import Side, TradeEvent

WINDOW_1M = 60.0
WINDOW_5M = 300.0
WINDOW_1H = 3600.0
DEFAULT_HORIZONS = (WINDOW_1M, WINDOW_5M, WINDOW_1H)

# Timestamps above this are taken to be milliseconds
_MS_TIMESTAMP_FLOOR = 1e11


@dataclass(frozen=True)
class MarketConstants:
    """Fixed market inputs; the quote rate is not fetched live."""

    native_decimals: int = 9
    """Decimals of the chain-native quote currency (SOL lamports)."""
    quote_usd_rate: float = 130.0
    """Display-currency value of one quote unit."""
    total_supply: float = 1_000_000_000
    price_epsilon: float = 1e-8
    """Prices below this are stored in 9-significant-digit exponential form."""


@dataclass
class MetricWindow:
    """
    (timestamp, notional) samples within `horizon` seconds of the last `now`.

    Samples may arrive out of order; pruning filters the whole list so it is
    idempotent and independent of insertion order.
    """

    horizon: float
    samples: list[tuple[float, float]] = field(default_factory=list)

    def prune(self, now: float) -> None:
        self.samples = [(ts, v) for ts, v in self.samples if now - ts <= self.horizon]

    def add(self, timestamp: float, volume: float, now: float) -> None:
        self.prune(now)
        if now - timestamp <= self.horizon:
            self.samples.append((timestamp, volume))

    def total(self, now: float) -> float:
        return sum(v for ts, v in self.samples if now - ts <= self.horizon)


@dataclass(frozen=True)
class MetricsSnapshot:
    """State after folding in one trade; timestamp is that trade's event time."""

    mint: str
    timestamp: float
    price: float
    market_cap: float
    volume_1m: float
    volume_5m: float
    volume_1h: float
    side: Side
    token_amount: float
    quote_amount: float
    notional: float
    signature: str = ""


def event_time_seconds(timestamp: float) -> float:
    """Trade timestamp in unix seconds, converting millisecond values."""
    ts = float(timestamp)
    if ts > _MS_TIMESTAMP_FLOOR:
        return float(int(ts // 1000))
    return ts


def display_price(quote_amount: float, token_amount: float, constants: MarketConstants) -> float:
    """Quote-per-token price in display currency; tiny prices kept in exponential form."""
    price = quote_amount / token_amount * constants.quote_usd_rate
    if price < constants.price_epsilon:
        price = float(f"{price:.8e}")
    return price


class MetricsAggregator:
    """
    Rolling volume / price tracker for a single mint.

    Only events with the tracked mint on either leg are folded in. The other
    leg is assumed to be the chain-native quote currency.
    """

    def __init__(
        self,
        mint: str,
        constants: MarketConstants | None = None,
        horizons: tuple[float, float, float] = DEFAULT_HORIZONS,
    ) -> None:
        self.mint = mint
        self.constants = constants or MarketConstants()
        self.windows: dict[float, MetricWindow] = {h: MetricWindow(horizon=h) for h in horizons}
        self._horizons = horizons
        self.last_price: float | None = None
        self.last_market_cap: float | None = None

    def matches(self, event: TradeEvent) -> bool:
        return event.input_token.mint == self.mint or event.output_token.mint == self.mint

    def observe(self, event: TradeEvent, now: float) -> MetricsSnapshot | None:
        """
        Fold one trade into the windows and return the new snapshot.

        Returns None for events on other mints and for events with a zero
        token leg (no price can be derived).
        """
        if not self.matches(event):
            return None

        is_sell = event.input_token.mint == self.mint
        token_leg = event.input_token if is_sell else event.output_token
        quote_leg = event.output_token if is_sell else event.input_token
        token_amount = token_leg.amount_raw / (10 ** token_leg.decimals)
        quote_amount = quote_leg.amount_raw / (10 ** self.constants.native_decimals)
        if token_amount <= 0:
            return None

        price = display_price(quote_amount, token_amount, self.constants)
        notional = token_amount * price
        market_cap = price * self.constants.total_supply
        timestamp = event_time_seconds(event.timestamp)

        for window in self.windows.values():
            window.add(timestamp, notional, now)

        self.last_price = price
        self.last_market_cap = market_cap
        h1m, h5m, h1h = self._horizons
        return MetricsSnapshot(
            mint=self.mint,
            timestamp=timestamp,
            price=price,
            market_cap=market_cap,
            volume_1m=self.windows[h1m].total(now),
            volume_5m=self.windows[h5m].total(now),
            volume_1h=self.windows[h1h].total(now),
            side=Side.SELL if is_sell else Side.BUY,
            token_amount=token_amount,
            quote_amount=quote_amount,
            notional=notional,
            signature=event.signature,
        )
