"""
Trade decoder contract.

The DEX decoder is an external collaborator: it turns a NormalizedTransaction
into ordered trade and liquidity events. swapwatch only defines the shape
of its inputs and outputs here and consumes whatever implementation the
runtime is given.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, Sequence, runtime_checkable

from swapwatch.stream_listener.models import NormalizedTransaction


class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class TokenAmount:
    """One leg of a trade: mint plus raw integer amount and its decimal scale."""

    mint: str
    amount_raw: int
    decimals: int

    @property
    def ui_amount(self) -> float:
        return self.amount_raw / (10 ** self.decimals)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenAmount":
        return cls(
            mint=str(data.get("mint") or ""),
            amount_raw=int(data.get("amountRaw", data.get("amount_raw", 0)) or 0),
            decimals=int(data.get("decimals") or 0),
        )


@dataclass(frozen=True)
class TradeEvent:
    """
    A swap extracted from one transaction.

    timestamp is unix seconds; decoders reporting milliseconds are accepted
    and converted by the metrics layer.
    """

    type: Side
    user: str
    input_token: TokenAmount
    output_token: TokenAmount
    venue: str
    program_id: str
    slot: int
    timestamp: float
    signature: str
    fee: TokenAmount | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TradeEvent":
        """Build from a decoder's dict output (camelCase keys as emitted by JS-style parsers)."""
        fee = data.get("fee")
        return cls(
            type=Side(str(data.get("type", "BUY")).upper()),
            user=str(data.get("user") or ""),
            input_token=TokenAmount.from_dict(data.get("inputToken") or {}),
            output_token=TokenAmount.from_dict(data.get("outputToken") or {}),
            venue=str(data.get("amm") or data.get("venue") or ""),
            program_id=str(data.get("programId") or ""),
            slot=int(data.get("slot") or 0),
            timestamp=float(data.get("timestamp") or 0),
            signature=str(data.get("signature") or ""),
            fee=TokenAmount.from_dict(fee) if isinstance(fee, dict) else None,
        )


@dataclass(frozen=True)
class LiquidityEvent:
    """Pool add/remove/create; logged only, never fed into metrics."""

    type: str
    pool_id: str
    token0: TokenAmount
    token1: TokenAmount
    venue: str
    program_id: str
    slot: int
    timestamp: float
    signature: str


@dataclass(frozen=True)
class DecodeOptions:
    """
    allowed_program_ids: restrict decoding to these venue programs (None = any known venue).
    allow_unknown_venue: let the decoder guess at unrecognized programs.
    """

    allowed_program_ids: tuple[str, ...] | None = None
    allow_unknown_venue: bool = False


@runtime_checkable
class TradeDecoder(Protocol):
    def decode_trades(
        self, tx: NormalizedTransaction, options: DecodeOptions
    ) -> Sequence[TradeEvent]: ...

    def decode_liquidity(
        self, tx: NormalizedTransaction, options: DecodeOptions
    ) -> Sequence[LiquidityEvent]: ...
