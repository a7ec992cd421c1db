"""
Analysis engine: rolling trade metrics per tracked mint.
"""

from swapwatch.analysis_engine.metrics import (
    MarketConstants,
    MetricsAggregator,
    MetricsSnapshot,
    MetricWindow,
    event_time_seconds,
)

__all__ = [
    "MarketConstants",
    "MetricWindow",
    "MetricsAggregator",
    "MetricsSnapshot",
    "event_time_seconds",
]
