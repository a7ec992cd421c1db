"""
Pytest fixtures for swapwatch tests: trade / snapshot factories, a fake
decoder, and a ledger in a temporary directory.
"""

from __future__ import annotations

from typing import Any, Callable

import pytest

from swapwatch.analysis_engine.metrics import MetricsSnapshot
from swapwatch.decoding.interface import DecodeOptions, LiquidityEvent, Side, TokenAmount, TradeEvent
from swapwatch.ledger.trade_ledger import TradeLedger
from swapwatch.stream_listener.models import NormalizedTransaction

# Valid Solana pubkeys (base58, 32 bytes)
MINT = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
OTHER_MINT = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"
WSOL = "So11111111111111111111111111111111111111112"
TRADER = "4Nd1mBQtrMJVYVfKf2PJy9NZUZdTAsp7D4xWLs4gDB4T"
PUMP_SWAP = "pAMMBay6oceH9fJKBRHGP5D4bD4sWpmSwMn52FMfXEA"

T0 = 1_700_000_000
TOKEN_DECIMALS = 6


class FakeDecoder:
    """
    Returns pre-registered trades per signature. Signatures in `fail_on`
    raise, mimicking a malformed instruction payload.
    """

    def __init__(self) -> None:
        self.trades: dict[str, list[Any]] = {}
        self.liquidity: dict[str, list[LiquidityEvent]] = {}
        self.fail_on: set[str] = set()
        self.seen: list[tuple[NormalizedTransaction, DecodeOptions]] = []
        self.liquidity_calls = 0

    def decode_trades(self, tx: NormalizedTransaction, options: DecodeOptions) -> list[Any]:
        self.seen.append((tx, options))
        if tx.signature in self.fail_on:
            raise ValueError(f"bad instruction data in {tx.signature}")
        return list(self.trades.get(tx.signature, []))

    def decode_liquidity(self, tx: NormalizedTransaction, options: DecodeOptions) -> list[LiquidityEvent]:
        self.liquidity_calls += 1
        return list(self.liquidity.get(tx.signature, []))


@pytest.fixture
def decoder() -> FakeDecoder:
    return FakeDecoder()


@pytest.fixture
def make_trade() -> Callable[..., TradeEvent]:
    """
    Build a TradeEvent against the SOL quote leg.
    BUY: SOL in, tracked token out. SELL: tracked token in, SOL out.
    """

    def _make(
        side: Side = Side.BUY,
        tokens: float = 1000.0,
        quote: float = 2.0,
        timestamp: float = T0,
        mint: str = MINT,
        signature: str = "sig",
    ) -> TradeEvent:
        token_leg = TokenAmount(mint=mint, amount_raw=round(tokens * 10**TOKEN_DECIMALS), decimals=TOKEN_DECIMALS)
        quote_leg = TokenAmount(mint=WSOL, amount_raw=round(quote * 10**9), decimals=9)
        buy = side is Side.BUY
        return TradeEvent(
            type=side,
            user=TRADER,
            input_token=quote_leg if buy else token_leg,
            output_token=token_leg if buy else quote_leg,
            venue="pumpswap",
            program_id=PUMP_SWAP,
            slot=300_000_000,
            timestamp=timestamp,
            signature=signature,
        )

    return _make


@pytest.fixture
def make_snapshot() -> Callable[..., MetricsSnapshot]:
    """MetricsSnapshot with every window volume set to volume_1m."""

    def _make(
        timestamp: float,
        price: float,
        volume_1m: float,
        side: Side = Side.BUY,
    ) -> MetricsSnapshot:
        return MetricsSnapshot(
            mint=MINT,
            timestamp=timestamp,
            price=price,
            market_cap=price * 1_000_000_000,
            volume_1m=volume_1m,
            volume_5m=volume_1m,
            volume_1h=volume_1m,
            side=side,
            token_amount=1000.0,
            quote_amount=price * 1000.0,
            notional=price * 1000.0,
        )

    return _make


@pytest.fixture
def ledger(tmp_path) -> TradeLedger:
    return TradeLedger.for_mint(MINT, tmp_path)
