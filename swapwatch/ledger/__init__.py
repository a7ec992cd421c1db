"""
Paper-trade ledger persistence.
"""

from swapwatch.ledger.trade_ledger import LedgerStats, TradeLedger, TradeLogEntry, ledger_path_for

__all__ = ["LedgerStats", "TradeLedger", "TradeLogEntry", "ledger_path_for"]
