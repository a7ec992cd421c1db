"""
Session wiring and the CLI worker for live paper trading.
"""

from swapwatch.agent_worker.session import TradingSession, wallet_from_ledger

__all__ = ["TradingSession", "wallet_from_ledger"]
