"""
Per-asset trading session: normalize -> decode -> metrics -> strategy -> ledger.

One TradingSession owns all mutable state for one tracked mint (windows,
position, wallet, ledger). Envelopes are handled one at a time in arrival
order; multiple mints need multiple sessions.

The session keeps a monotonic event-time clock (the latest trade timestamp
seen) and passes it to the aggregator as `now`, so metrics never depend on
wall-clock arrival time.
"""

from __future__ import annotations

import asyncio
import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from swapwatch.analysis_engine.metrics import MetricsAggregator, MetricsSnapshot, event_time_seconds
from swapwatch.config.env import PUMP_SWAP_PROGRAM_ID
from swapwatch.decoding.interface import DecodeOptions, LiquidityEvent, Side, TradeDecoder, TradeEvent
from swapwatch.ledger.trade_ledger import TradeLedger, TradeLogEntry
from swapwatch.strategy.config import StrategyConfig
from swapwatch.strategy.engine import Decision, PaperWallet, StrategyEngine
from swapwatch.stream_listener.models import NormalizedTransaction
from swapwatch.stream_listener.normalizer import is_create_account_with_seed, normalize
from swapwatch.swapwatch_logging import get_logger, short_address
from swapwatch.utils.formatting import format_market_cap, format_price, format_volume

logger = get_logger(__name__)

DEFAULT_DECODE_OPTIONS = DecodeOptions(allowed_program_ids=(PUMP_SWAP_PROGRAM_ID,), allow_unknown_venue=False)


@dataclass
class SessionStats:
    envelopes: int = 0
    skipped: int = 0
    decode_errors: int = 0
    trades: int = 0
    snapshots: int = 0
    decisions: int = 0

    def to_dict(self) -> dict[str, int]:
        return dataclasses.asdict(self)


def _coerce_trade(raw: Any) -> TradeEvent:
    if isinstance(raw, TradeEvent):
        return raw
    if isinstance(raw, dict):
        return TradeEvent.from_dict(raw)
    raise TypeError(f"decoder returned unsupported trade type {type(raw).__name__}")


def wallet_from_ledger(entries: Iterable[TradeLogEntry], initial_balance: float) -> PaperWallet:
    """Rebuild the paper wallet by replaying ledger entries from the initial balance."""
    wallet = PaperWallet(balance=initial_balance)
    for entry in entries:
        if entry.type is Side.BUY:
            wallet.balance -= entry.total
            wallet.tokens += entry.amount
        else:
            wallet.balance += entry.total
            wallet.tokens -= entry.amount
    return wallet


class TradingSession:
    """Explicit pipeline wiring for one tracked mint."""

    def __init__(
        self,
        mint: str,
        decoder: TradeDecoder,
        *,
        engine: StrategyEngine | None = None,
        aggregator: MetricsAggregator | None = None,
        decode_options: DecodeOptions | None = None,
        track_liquidity: bool = False,
        skip_create_account_with_seed: bool = False,
    ) -> None:
        self.mint = mint
        self.decoder = decoder
        self.engine = engine or StrategyEngine(mint)
        self.aggregator = aggregator or MetricsAggregator(mint)
        self.decode_options = decode_options or DEFAULT_DECODE_OPTIONS
        self.track_liquidity = track_liquidity
        self.skip_create_account_with_seed = skip_create_account_with_seed
        self.clock = 0.0
        self.stats = SessionStats()

    @classmethod
    def create(
        cls,
        mint: str,
        decoder: TradeDecoder,
        *,
        trades_dir: str | Path,
        config: StrategyConfig | None = None,
        **kwargs: Any,
    ) -> "TradingSession":
        """Session with a file-backed ledger at trades_dir/trades_<mint>.json."""
        ledger = TradeLedger.for_mint(mint, trades_dir)
        engine = StrategyEngine(mint, config=config, ledger=ledger)
        return cls(mint, decoder, engine=engine, **kwargs)

    @property
    def ledger(self) -> TradeLedger | None:
        return self.engine.ledger

    async def handle(self, envelope: dict[str, Any], received_at: float) -> None:
        """Async handler for StreamClient; ledger I/O runs off the event loop."""
        await asyncio.to_thread(self.handle_envelope, envelope, received_at)

    def handle_envelope(self, envelope: Any, received_at: float | None = None) -> list[Decision]:
        """
        Run one envelope through the pipeline and return the strategy
        transitions it caused (usually none). Decoder failures are logged
        and the envelope is skipped.
        """
        self.stats.envelopes += 1
        if self.skip_create_account_with_seed and is_create_account_with_seed(envelope):
            self.stats.skipped += 1
            logger.debug("envelope_skipped", reason="create_account_with_seed")
            return []

        tx = normalize(envelope, received_at)
        try:
            trades = [_coerce_trade(t) for t in self.decoder.decode_trades(tx, self.decode_options)]
        except Exception as e:
            self.stats.decode_errors += 1
            logger.exception(
                "envelope_decode_failed",
                mint=short_address(self.mint),
                signature=short_address(tx.signature),
                slot=tx.slot,
                error=str(e),
            )
            return []

        if self.track_liquidity:
            self._log_liquidity(tx)

        decisions: list[Decision] = []
        for trade in trades:
            if trade.timestamp <= 0:
                trade = dataclasses.replace(trade, timestamp=float(tx.block_time))
            self.stats.trades += 1
            snapshot = self.observe(trade)
            if snapshot is None:
                continue
            decision = self.engine.on_snapshot(snapshot)
            if decision is not None:
                self.stats.decisions += 1
                decisions.append(decision)
        return decisions

    def observe(self, trade: TradeEvent) -> MetricsSnapshot | None:
        """Advance the event-time clock and fold the trade into the metrics."""
        if not self.aggregator.matches(trade):
            return None
        self.clock = max(self.clock, event_time_seconds(trade.timestamp))
        snapshot = self.aggregator.observe(trade, now=self.clock)
        if snapshot is None:
            return None
        self.stats.snapshots += 1
        logger.info(
            "metrics_updated",
            mint=short_address(self.mint),
            side=snapshot.side.value,
            price=format_price(snapshot.price),
            market_cap=format_market_cap(snapshot.market_cap),
            volume_1m=format_volume(snapshot.volume_1m),
            volume_5m=format_volume(snapshot.volume_5m),
            volume_1h=format_volume(snapshot.volume_1h),
            signature=short_address(snapshot.signature),
        )
        return snapshot

    def _log_liquidity(self, tx: NormalizedTransaction) -> None:
        try:
            events: list[LiquidityEvent] = list(self.decoder.decode_liquidity(tx, self.decode_options))
        except Exception as e:
            logger.warning("liquidity_decode_failed", signature=short_address(tx.signature), error=str(e))
            return
        if events:
            logger.info(
                "liquidity_events_seen",
                mint=short_address(self.mint),
                signature=short_address(tx.signature),
                count=len(events),
                types=[getattr(ev, "type", "?") for ev in events],
            )

    def summary(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "wallet": self.engine.wallet_status(),
            "session": self.stats.to_dict(),
        }
        if self.ledger is not None:
            out["ledger"] = self.ledger.stats().to_dict()
        return out
