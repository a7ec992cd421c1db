"""
swapwatch: live DEX trade scanner and paper-trading agent for Solana.

Subscribes to transactions touching one tracked mint, normalizes them,
decodes swaps through a pluggable decoder, keeps rolling 1m/5m/1h volume
metrics and runs a long/flat paper strategy that journals every trade.
"""

__version__ = "0.1.0"
