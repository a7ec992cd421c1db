"""
Data models for normalized stream transactions.

Canonical shape handed to the trade decoder: every byte field already
encoded as base58 text, every optional sub-structure present (possibly
empty). Integers are Python ints, so 64-bit wire values (fees, lamport
balances, slots) stay exact. Only UiTokenAmount.ui_amount is a float.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class UiTokenAmount:
    amount: str = "0"
    """Raw integer amount as a decimal string."""
    decimals: int = 0
    ui_amount: float = 0.0
    """amount / 10**decimals; a double, so exact only up to ~2**53 raw units."""
    ui_amount_string: str = "0"

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount": self.amount,
            "decimals": self.decimals,
            "uiAmount": self.ui_amount,
            "uiAmountString": self.ui_amount_string,
        }


@dataclass(frozen=True)
class TokenBalance:
    account_index: int
    mint: str
    owner: str
    ui_token_amount: UiTokenAmount = field(default_factory=UiTokenAmount)

    def to_dict(self) -> dict[str, Any]:
        return {
            "accountIndex": self.account_index,
            "mint": self.mint,
            "owner": self.owner,
            "uiTokenAmount": self.ui_token_amount.to_dict(),
        }


@dataclass(frozen=True)
class CompiledInstruction:
    program_id_index: int
    accounts: tuple[int, ...]
    data: str
    """Instruction payload, base58."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "programIdIndex": self.program_id_index,
            "accounts": list(self.accounts),
            "data": self.data,
        }


@dataclass(frozen=True)
class InnerInstructionGroup:
    index: int
    """Index of the top-level instruction that produced these CPIs."""
    instructions: tuple[CompiledInstruction, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "instructions": [ix.to_dict() for ix in self.instructions],
        }


@dataclass(frozen=True)
class NormalizedTransaction:
    """
    Canonical transaction record built from a raw stream envelope.

    Invariant: no field is ever None except `err` (None = success) and
    `block_time` is always a number of unix seconds (0 when unknown).
    """

    signature: str
    slot: int
    block_time: int
    account_keys: tuple[str, ...]
    instructions: tuple[CompiledInstruction, ...]
    inner_instructions: tuple[InnerInstructionGroup, ...]
    pre_balances: tuple[int, ...]
    post_balances: tuple[int, ...]
    pre_token_balances: tuple[TokenBalance, ...]
    post_token_balances: tuple[TokenBalance, ...]
    log_messages: tuple[str, ...]
    fee: int
    err: Any
    version: str | int = "legacy"
    signatures: tuple[str, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.err is None

    def program_id(self, instruction: CompiledInstruction) -> str | None:
        """Resolve an instruction's program id through the account key list."""
        idx = instruction.program_id_index
        if 0 <= idx < len(self.account_keys):
            return self.account_keys[idx]
        return None

    def to_rpc_dict(self) -> dict[str, Any]:
        """
        Return a getTransaction-style (json encoding) dict.

        Lets decoders written against RPC responses consume stream data unchanged.
        """
        return {
            "slot": self.slot,
            "blockTime": self.block_time,
            "version": self.version,
            "meta": {
                "err": self.err,
                "fee": self.fee,
                "preBalances": list(self.pre_balances),
                "postBalances": list(self.post_balances),
                "innerInstructions": [g.to_dict() for g in self.inner_instructions],
                "logMessages": list(self.log_messages),
                "preTokenBalances": [b.to_dict() for b in self.pre_token_balances],
                "postTokenBalances": [b.to_dict() for b in self.post_token_balances],
            },
            "transaction": {
                "signatures": list(self.signatures) or [self.signature],
                "message": {
                    "accountKeys": list(self.account_keys),
                    "instructions": [ix.to_dict() for ix in self.instructions],
                    "recentBlockhash": "",
                    "header": {
                        "numReadonlySignedAccounts": 0,
                        "numReadonlyUnsignedAccounts": 0,
                        "numRequiredSignatures": 0,
                    },
                },
            },
        }
