"""
Long/flat paper-trading state machine for one tracked mint.

FLAT -> LONG when cooldown, liquidity, volume spike, momentum, short-term
move and trend/buy-pressure confirmation all pass with no reversal pattern.
LONG -> FLAT on stop loss, take profit, max hold, reversal without uptrend,
or early profit without uptrend. Entry rules are only evaluated while FLAT
and exit rules only while LONG, so at most one position is ever open.

Every transition updates the paper wallet and appends one ledger entry.
No wall clock is read: all timing comes from snapshot timestamps.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from swapwatch.analysis_engine.metrics import MetricsSnapshot
from swapwatch.decoding.interface import Side
from swapwatch.ledger.trade_ledger import TradeLedger, TradeLogEntry
from swapwatch.strategy import indicators
from swapwatch.strategy.config import SizingPolicy, StrategyConfig
from swapwatch.swapwatch_logging import get_logger, short_address
from swapwatch.utils.formatting import format_price

logger = get_logger(__name__)


class StrategyState(str, Enum):
    FLAT = "FLAT"
    LONG = "LONG"


class ExitReason(str, Enum):
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
    MAX_HOLD = "max_hold"
    REVERSAL = "reversal"
    EARLY_EXIT = "early_exit"


@dataclass(frozen=True)
class Position:
    entry_price: float
    quantity: float
    opened_at: float


@dataclass
class PaperWallet:
    balance: float
    """Quote (display currency) balance."""
    tokens: float = 0.0


@dataclass(frozen=True)
class Decision:
    """A state transition taken on one snapshot."""

    side: Side
    entry: TradeLogEntry
    reason: ExitReason | None = None


class StrategyEngine:
    """
    Position manager driven by MetricsSnapshot updates.

    Keeps a time-bounded history of snapshots (config.price_data_window
    seconds, relative to the newest snapshot) for averages and trend.
    """

    def __init__(
        self,
        mint: str,
        config: StrategyConfig | None = None,
        ledger: TradeLedger | None = None,
    ) -> None:
        self.mint = mint
        self.config = config or StrategyConfig()
        self.ledger = ledger
        self.wallet = PaperWallet(balance=self.config.initial_balance)
        self.position: Position | None = None
        self.last_trade_timestamp = 0.0
        self.history: list[MetricsSnapshot] = []

    @property
    def state(self) -> StrategyState:
        return StrategyState.LONG if self.position is not None else StrategyState.FLAT

    def on_snapshot(self, snapshot: MetricsSnapshot) -> Decision | None:
        """Record the snapshot, then evaluate the rules for the current state."""
        self.history.append(snapshot)
        window = self.config.price_data_window
        self.history = [s for s in self.history if snapshot.timestamp - s.timestamp <= window]

        if self.position is not None:
            reason = self.exit_reason(snapshot)
            if reason is not None:
                return self._sell(snapshot, reason)
            return None
        if self.should_buy(snapshot):
            return self._buy(snapshot)
        return None

    def _prices(self) -> list[float]:
        return [s.price for s in self.history]

    def _volumes(self) -> list[float]:
        return [s.volume_1m for s in self.history]

    def is_uptrend(self) -> bool:
        return indicators.is_uptrend(self._prices(), self.config.trend_window)

    def reversal_detected(self) -> bool:
        detected = indicators.is_reversal(
            self._prices(), self._volumes(), self.config.price_change_threshold
        )
        if detected:
            p0, p1, p2 = self._prices()[-3:]
            logger.debug(
                "reversal_detected",
                mint=short_address(self.mint),
                up_pct=round((p1 - p0) / p0 * 100, 2),
                down_pct=round((p2 - p1) / p1 * 100, 2),
            )
        return detected

    def should_buy(self, snapshot: MetricsSnapshot) -> bool:
        cfg = self.config
        if len(self.history) < 2:
            return False
        if snapshot.timestamp - self.last_trade_timestamp < cfg.cooldown_seconds:
            return False
        if snapshot.volume_1m < cfg.min_volume:
            return False

        volume_spike = snapshot.volume_1m > indicators.average(self._volumes()) * cfg.volume_spike_multiplier
        movement = indicators.price_movement(self._prices(), cfg.price_movement_lookback)
        if abs(movement) >= cfg.price_change_threshold:
            logger.debug(
                "price_movement_detected",
                mint=short_address(self.mint),
                change_pct=round(movement * 100, 2),
            )
        pressure = indicators.buy_pressure([s.side for s in self.history], cfg.buy_pressure_lookback)
        confirmed = self.is_uptrend() or pressure > cfg.min_buy_pressure

        return (
            confirmed
            and volume_spike
            and movement >= cfg.price_change_threshold
            and indicators.momentum(self._prices()) > 0
            and not self.reversal_detected()
        )

    def profit_loss(self, price: float) -> float:
        """Fractional P/L of the open position at `price` (0 when flat)."""
        if self.position is None or self.position.entry_price == 0:
            return 0.0
        return (price - self.position.entry_price) / self.position.entry_price

    def exit_reason(self, snapshot: MetricsSnapshot) -> ExitReason | None:
        """First matching exit rule, checked in safety order; None to keep holding."""
        if self.position is None:
            return None
        cfg = self.config
        pnl = self.profit_loss(snapshot.price)
        if pnl <= -cfg.stop_loss:
            return ExitReason.STOP_LOSS
        if pnl >= cfg.profit_target:
            return ExitReason.TAKE_PROFIT
        if snapshot.timestamp - self.position.opened_at >= cfg.max_hold_seconds:
            return ExitReason.MAX_HOLD
        uptrend = self.is_uptrend()
        if not uptrend and self.reversal_detected():
            return ExitReason.REVERSAL
        if not uptrend and pnl > cfg.early_exit_profit:
            return ExitReason.EARLY_EXIT
        return None

    def _position_quantity(self, price: float) -> float:
        cfg = self.config
        if cfg.sizing is SizingPolicy.PROPORTIONAL:
            budget = min(cfg.max_position_size, max(self.wallet.balance, 0.0))
            return budget / price if price > 0 else 0.0
        return cfg.fixed_token_amount

    def _buy(self, snapshot: MetricsSnapshot) -> Decision | None:
        quantity = self._position_quantity(snapshot.price)
        if quantity <= 0:
            logger.warning(
                "paper_buy_skipped",
                mint=short_address(self.mint),
                reason="no_budget",
                balance=round(self.wallet.balance, 2),
            )
            return None
        total = quantity * snapshot.price
        self.position = Position(entry_price=snapshot.price, quantity=quantity, opened_at=snapshot.timestamp)
        self.wallet.balance -= total
        self.wallet.tokens += quantity
        self.last_trade_timestamp = snapshot.timestamp

        entry = TradeLogEntry(
            timestamp=snapshot.timestamp,
            type=Side.BUY,
            price=snapshot.price,
            amount=quantity,
            total=total,
        )
        self._record(entry)
        logger.info(
            "paper_buy_executed",
            mint=short_address(self.mint),
            price=format_price(snapshot.price),
            amount=quantity,
            total=round(total, 2),
            timestamp=entry.date_time,
        )
        return Decision(side=Side.BUY, entry=entry)

    def _sell(self, snapshot: MetricsSnapshot, reason: ExitReason) -> Decision:
        position = self.position
        assert position is not None
        proceeds = position.quantity * snapshot.price
        profit_loss_pct = self.profit_loss(snapshot.price) * 100
        hold_time = snapshot.timestamp - position.opened_at

        self.wallet.balance += proceeds
        self.wallet.tokens -= position.quantity
        self.position = None

        entry = TradeLogEntry(
            timestamp=snapshot.timestamp,
            type=Side.SELL,
            price=snapshot.price,
            amount=position.quantity,
            total=proceeds,
            profit_loss=profit_loss_pct,
            hold_time=hold_time,
        )
        self._record(entry)
        logger.info(
            "paper_sell_executed",
            mint=short_address(self.mint),
            reason=reason.value,
            entry_price=format_price(position.entry_price),
            exit_price=format_price(snapshot.price),
            amount=position.quantity,
            total=round(proceeds, 2),
            profit_loss_pct=round(profit_loss_pct, 2),
            hold_time_sec=hold_time,
            timestamp=entry.date_time,
        )
        return Decision(side=Side.SELL, entry=entry, reason=reason)

    def _record(self, entry: TradeLogEntry) -> None:
        if self.ledger is not None:
            self.ledger.append(entry)

    def wallet_status(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "mint": self.mint,
            "state": self.state.value,
            "balance": round(self.wallet.balance, 2),
            "tokens": self.wallet.tokens,
            "position": None,
        }
        if self.position is not None:
            out["position"] = {
                "entry_price": self.position.entry_price,
                "quantity": self.position.quantity,
                "opened_at": self.position.opened_at,
            }
        return out
