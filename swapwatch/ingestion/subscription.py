"""
Subscription filter for the transaction stream.

One account-inclusion filter per tracked asset, built once per session and
re-sent unchanged on every (re)connection.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Commitment(str, Enum):
    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class SubscriptionFilter:
    include_accounts: tuple[str, ...]
    exclude_accounts: tuple[str, ...] = ()
    require_accounts: tuple[str, ...] = ()
    commitment: Commitment = Commitment.PROCESSED

    def __post_init__(self) -> None:
        if not self.include_accounts and not self.require_accounts:
            raise ValueError("subscription filter must include or require at least one account")

    @classmethod
    def for_address(cls, address: str, commitment: Commitment = Commitment.PROCESSED) -> "SubscriptionFilter":
        return cls(include_accounts=(address,), commitment=commitment)

    def to_request(self) -> dict[str, Any]:
        """Transport-neutral subscription request."""
        return {
            "includeAccounts": list(self.include_accounts),
            "excludeAccounts": list(self.exclude_accounts),
            "requireAccounts": list(self.require_accounts),
            "commitment": self.commitment.value.upper(),
        }
