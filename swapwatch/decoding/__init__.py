"""
Decoder collaborator contract: options in, trade / liquidity events out.
"""

from swapwatch.decoding.interface import (
    DecodeOptions,
    LiquidityEvent,
    Side,
    TokenAmount,
    TradeDecoder,
    TradeEvent,
)

__all__ = [
    "DecodeOptions",
    "LiquidityEvent",
    "Side",
    "TokenAmount",
    "TradeDecoder",
    "TradeEvent",
]
