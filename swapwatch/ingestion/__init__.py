"""
Stream ingestion: subscription filter, transports and the supervised client.
"""

from swapwatch.ingestion.stream_client import (
    ReconnectPolicy,
    StreamClient,
    StreamState,
)
from swapwatch.ingestion.subscription import Commitment, SubscriptionFilter
from swapwatch.ingestion.transport import (
    StreamConnection,
    StreamTransport,
    WebSocketTransport,
    notification_to_envelope,
)

__all__ = [
    "Commitment",
    "ReconnectPolicy",
    "StreamClient",
    "StreamConnection",
    "StreamState",
    "StreamTransport",
    "SubscriptionFilter",
    "WebSocketTransport",
    "notification_to_envelope",
]
