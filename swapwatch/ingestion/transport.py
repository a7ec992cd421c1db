"""
Stream transports.

StreamClient only needs three things from a transport: open a connection,
send the subscription request, and iterate envelopes until the stream ends
or fails. WebSocketTransport implements that over JSON-RPC
`transactionSubscribe` (enhanced websocket RPC) and reshapes each
`transactionNotification` into the envelope layout the normalizer expects.
"""

from __future__ import annotations

import itertools
import json
from typing import TYPE_CHECKING, Any, AsyncIterator, Protocol

import websockets

from swapwatch.core.exceptions import StreamError
from swapwatch.swapwatch_logging import get_logger

if TYPE_CHECKING:
    from websockets.asyncio.client import ClientConnection

logger = get_logger(__name__)

DEFAULT_WS_PING_INTERVAL = 30.0
DEFAULT_WS_PING_TIMEOUT = 10.0
DEFAULT_WS_OPEN_TIMEOUT = 15.0
_WS_CLOSE_TIMEOUT = 5.0


class StreamConnection(Protocol):
    async def send(self, request: dict[str, Any]) -> None: ...

    def messages(self) -> AsyncIterator[dict[str, Any]]: ...

    async def close(self) -> None: ...


class StreamTransport(Protocol):
    async def connect(self) -> StreamConnection: ...


def build_transaction_subscribe(request: dict[str, Any], request_id: int) -> dict[str, Any]:
    """Translate a SubscriptionFilter request into a transactionSubscribe JSON-RPC call."""
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "transactionSubscribe",
        "params": [
            {
                "vote": False,
                "accountInclude": list(request.get("includeAccounts") or []),
                "accountExclude": list(request.get("excludeAccounts") or []),
                "accountRequired": list(request.get("requireAccounts") or []),
            },
            {
                "commitment": str(request.get("commitment") or "processed").lower(),
                "encoding": "json",
                "transactionDetails": "full",
                "showRewards": False,
                "maxSupportedTransactionVersion": 0,
            },
        ],
    }


def notification_to_envelope(msg: dict[str, Any]) -> dict[str, Any] | None:
    """
    Reshape a transactionNotification into a stream envelope.
    Returns None for anything that is not a transaction notification.
    """
    if msg.get("method") != "transactionNotification":
        return None
    params = msg.get("params") or {}
    result = params.get("result") or {}
    wrapper = result.get("transaction") or {}
    if not isinstance(wrapper, dict):
        return None
    return {
        "transaction": {
            "slot": result.get("slot"),
            "transaction": {
                "signature": result.get("signature"),
                "transaction": wrapper.get("transaction"),
                "meta": wrapper.get("meta"),
                "version": wrapper.get("version"),
            },
        },
        "blockTime": wrapper.get("blockTime"),
    }


class WebSocketConnection:
    """One live websocket subscription."""

    def __init__(self, ws: "ClientConnection") -> None:
        self._ws = ws
        self._ids = itertools.count(1)
        self.subscription_id: int | None = None

    async def send(self, request: dict[str, Any]) -> None:
        body = build_transaction_subscribe(request, next(self._ids))
        await self._ws.send(json.dumps(body))

    async def messages(self) -> AsyncIterator[dict[str, Any]]:
        """
        Yield envelopes until the server closes the stream. A JSON-RPC error
        (e.g. rejected subscription) raises StreamError.
        """
        async for raw in self._ws:
            try:
                msg = json.loads(raw)
            except (json.JSONDecodeError, TypeError):
                logger.debug("stream_message_not_json")
                continue
            if not isinstance(msg, dict):
                continue
            if msg.get("error"):
                raise StreamError(f"stream RPC error: {msg['error']}")
            if "result" in msg and isinstance(msg.get("result"), int):
                self.subscription_id = msg["result"]
                logger.info("stream_subscription_confirmed", subscription_id=self.subscription_id)
                continue
            envelope = notification_to_envelope(msg)
            if envelope is not None:
                yield envelope

    async def close(self) -> None:
        await self._ws.close()


class WebSocketTransport:
    """Opens websocket connections to a transactionSubscribe-capable endpoint."""

    def __init__(
        self,
        endpoint: str,
        *,
        ping_interval: float | None = DEFAULT_WS_PING_INTERVAL,
        ping_timeout: float | None = DEFAULT_WS_PING_TIMEOUT,
        open_timeout: float | None = DEFAULT_WS_OPEN_TIMEOUT,
    ) -> None:
        if not endpoint.strip():
            raise ValueError("endpoint must be non-empty")
        self.endpoint = endpoint.strip()
        self._ping_interval = ping_interval
        self._ping_timeout = ping_timeout
        self._open_timeout = open_timeout

    async def connect(self) -> WebSocketConnection:
        ws = await websockets.connect(
            self.endpoint,
            ping_interval=self._ping_interval,
            ping_timeout=self._ping_timeout,
            open_timeout=self._open_timeout,
            close_timeout=_WS_CLOSE_TIMEOUT,
            max_size=None,
        )
        return WebSocketConnection(ws)
