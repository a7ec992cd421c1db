"""
Supervised stream subscription: connect, subscribe, deliver envelopes,
reconnect with bounded exponential backoff.

Each connection attempt gets a new generation number. Envelopes are only
delivered while their generation is current, so after a reconnect (or
stop()) nothing from an older subscription reaches the handler. There is a
single supervisor task, hence at most one pending reconnect wait at a time.

After `policy.max_attempts` consecutive failures without reaching ACTIVE the
client moves to FAILED, calls `on_fatal` once and raises ReconnectExhausted
from run() / wait().

Usage:
    client = StreamClient(transport, SubscriptionFilter.for_address(mint), handler)
    client.start()
    ...
    await client.stop()
"""

from __future__ import annotations

import asyncio
import inspect
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

from websockets.exceptions import ConnectionClosed

from swapwatch.core.exceptions import ReconnectExhausted, StreamError
from swapwatch.ingestion.subscription import SubscriptionFilter
from swapwatch.ingestion.transport import StreamConnection, StreamTransport
from swapwatch.swapwatch_logging import get_logger

logger = get_logger(__name__)

DEFAULT_RECONNECT_BASE_SEC = 5.0
DEFAULT_RECONNECT_MAX_SEC = 60.0
DEFAULT_RECONNECT_MULTIPLIER = 2.0
DEFAULT_RECONNECT_JITTER = 0.2
DEFAULT_MAX_RECONNECT_ATTEMPTS = 10
DEFAULT_STOP_TIMEOUT_SEC = 5.0

# (envelope, received_at) -> None; may be sync or async
EnvelopeHandler = Callable[[dict[str, Any], float], "Awaitable[None] | None"]
FatalHandler = Callable[[ReconnectExhausted], Any]


class StreamState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    ACTIVE = "active"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


@dataclass(frozen=True)
class ReconnectPolicy:
    """Exponential backoff with multiplicative jitter, capped at max_delay."""

    base_delay: float = DEFAULT_RECONNECT_BASE_SEC
    max_delay: float = DEFAULT_RECONNECT_MAX_SEC
    multiplier: float = DEFAULT_RECONNECT_MULTIPLIER
    jitter: float = DEFAULT_RECONNECT_JITTER
    max_attempts: int | None = DEFAULT_MAX_RECONNECT_ATTEMPTS

    def __post_init__(self) -> None:
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("reconnect delays must be >= 0")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        if not 0 <= self.jitter < 1:
            raise ValueError("jitter must be in [0, 1)")
        if self.max_attempts is not None and self.max_attempts < 0:
            raise ValueError("max_attempts must be >= 0 or None")

    def delay(self, attempt: int, rng: random.Random | None = None) -> float:
        """Delay before reconnect attempt number `attempt` (1-based)."""
        raw = self.base_delay * self.multiplier ** max(attempt - 1, 0)
        capped = min(raw, self.max_delay)
        if self.jitter:
            r = rng or random
            capped *= 1 + r.uniform(-self.jitter, self.jitter)
        return max(0.0, min(capped, self.max_delay))


class StreamClient:
    """Owns one logical subscription and keeps it alive across disconnects."""

    def __init__(
        self,
        transport: StreamTransport,
        subscription: SubscriptionFilter,
        handler: EnvelopeHandler,
        *,
        policy: ReconnectPolicy | None = None,
        on_fatal: FatalHandler | None = None,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
        stop_timeout: float = DEFAULT_STOP_TIMEOUT_SEC,
    ) -> None:
        self._transport = transport
        self._subscription = subscription
        self._handler = handler
        self._policy = policy or ReconnectPolicy()
        self._on_fatal = on_fatal
        self._clock = clock
        self._rng = rng
        self._stop_timeout = stop_timeout
        self._stop = asyncio.Event()
        self._state = StreamState.DISCONNECTED
        self._generation = 0
        self._attempts = 0
        self._connection: StreamConnection | None = None
        self._task: asyncio.Task[None] | None = None
        self.delivered = 0

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def attempts(self) -> int:
        """Consecutive failed attempts since the last ACTIVE connection."""
        return self._attempts

    def _set_state(self, state: StreamState) -> None:
        if state is not self._state:
            logger.debug("stream_state_changed", previous=self._state.value, state=state.value)
            self._state = state

    def start(self) -> asyncio.Task[None]:
        """Schedule run() on the running loop. Idempotent while running."""
        if self._task is not None and not self._task.done():
            return self._task
        self._stop.clear()
        self._task = asyncio.create_task(self.run(), name="swapwatch-stream")
        return self._task

    async def wait(self) -> None:
        """Wait for the supervisor to finish; re-raises ReconnectExhausted."""
        if self._task is not None:
            await self._task

    async def stop(self) -> None:
        """
        Invalidate the current generation, close the live connection and wait
        for the supervisor to exit. An in-flight handler call is allowed to
        finish; nothing is delivered after stop() returns.
        """
        self._stop.set()
        self._generation += 1
        await self._close_connection()
        task = self._task
        if task is None or task.done():
            self._set_state(StreamState.DISCONNECTED)
            return
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=self._stop_timeout)
        except asyncio.TimeoutError:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        except ReconnectExhausted:
            # already reported via on_fatal
            return
        self._set_state(StreamState.DISCONNECTED)

    async def run(self) -> None:
        """
        Supervisor loop. Returns after stop(); raises ReconnectExhausted once
        the retry budget is spent.
        """
        last_error: BaseException | None = None
        self._attempts = 0
        while not self._stop.is_set():
            self._generation += 1
            generation = self._generation
            self._set_state(StreamState.CONNECTING)
            logger.info("stream_connecting", generation=generation, attempt=self._attempts)
            try:
                connection = await self._transport.connect()
                self._connection = connection
                if self._stop.is_set() or generation != self._generation:
                    break
                await connection.send(self._subscription.to_request())
                self._set_state(StreamState.ACTIVE)
                self._attempts = 0
                last_error = None
                logger.info(
                    "stream_active",
                    generation=generation,
                    accounts=len(self._subscription.include_accounts),
                )
                async for envelope in connection.messages():
                    if self._stop.is_set() or generation != self._generation:
                        logger.debug("stream_stale_envelope_dropped", generation=generation)
                        break
                    await self._dispatch(envelope)
                else:
                    if not self._stop.is_set():
                        last_error = StreamError("stream ended by server")
                        logger.warning("stream_ended", generation=generation)
            except asyncio.CancelledError:
                raise
            except ConnectionClosed as e:
                last_error = e
                logger.warning(
                    "stream_disconnected",
                    generation=generation,
                    code=e.rcvd.code if e.rcvd else None,
                    reason=e.rcvd.reason if e.rcvd else None,
                )
            except Exception as e:
                last_error = e
                logger.warning("stream_error", generation=generation, error=str(e), error_type=type(e).__name__)
            finally:
                await self._close_connection()

            if self._stop.is_set():
                break

            self._attempts += 1
            max_attempts = self._policy.max_attempts
            if max_attempts is not None and self._attempts > max_attempts:
                await self._fail(ReconnectExhausted(max_attempts, last_error))

            backoff = self._policy.delay(self._attempts, self._rng)
            self._set_state(StreamState.RECONNECTING)
            logger.info(
                "stream_reconnect_scheduled",
                generation=generation,
                attempt=self._attempts,
                backoff_sec=round(backoff, 2),
            )
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=backoff)
            except asyncio.TimeoutError:
                pass

        self._set_state(StreamState.DISCONNECTED)
        logger.info("stream_stopped", generation=self._generation, delivered=self.delivered)

    async def _dispatch(self, envelope: dict[str, Any]) -> None:
        """Deliver one envelope; handler errors are logged and the stream continues."""
        received_at = self._clock()
        try:
            result = self._handler(envelope, received_at)
            if inspect.isawaitable(result):
                await result
            self.delivered += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("stream_handler_error", error=str(e))

    async def _close_connection(self) -> None:
        connection, self._connection = self._connection, None
        if connection is None:
            return
        try:
            await connection.close()
        except Exception as e:
            logger.debug("stream_close_failed", error=str(e))

    async def _fail(self, exc: ReconnectExhausted) -> None:
        self._set_state(StreamState.FAILED)
        logger.critical(
            "stream_reconnect_exhausted",
            attempts=exc.attempts,
            last_error=str(exc.last_error) if exc.last_error else None,
        )
        if self._on_fatal is not None:
            try:
                result = self._on_fatal(exc)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.exception("stream_fatal_handler_error", error=str(e))
        raise exc
