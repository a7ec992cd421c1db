"""
Stream listener package.

Normalizes raw subscription envelopes into the canonical transaction
record consumed by the trade decoder.
"""

from swapwatch.stream_listener.models import (
    CompiledInstruction,
    InnerInstructionGroup,
    NormalizedTransaction,
    TokenBalance,
    UiTokenAmount,
)
from swapwatch.stream_listener.normalizer import (
    encode_address,
    is_create_account_with_seed,
    normalize,
)

__all__ = [
    "CompiledInstruction",
    "InnerInstructionGroup",
    "NormalizedTransaction",
    "TokenBalance",
    "UiTokenAmount",
    "encode_address",
    "is_create_account_with_seed",
    "normalize",
]
