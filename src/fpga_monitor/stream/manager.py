"""
Connection Manager
==================

WebSocket client that owns the telemetry stream connection lifecycle.

This module provides the ConnectionManager class which:
    - Connects to the telemetry backend's /ws/telemetry endpoint
    - Decodes incoming frames with FrameDecoder
    - Routes decoded samples into the StateStore
    - Reconnects with bounded exponential backoff
    - Mirrors its connection state into the StateStore

State Machine:
    DISCONNECTED → CONNECTING → CONNECTED
    CONNECTED → DISCONNECTED (close/error) → RECONNECTING → CONNECTING

Design Rules:
    - Exactly one live connection per manager; start() is idempotent
    - Malformed frames are dropped and logged, never fatal
    - Connection failures are never raised to the caller, only
      published as connection state
    - After stop() returns, nothing is published again
"""

import asyncio
import functools
import logging
import random
from typing import TYPE_CHECKING, Any, AsyncContextManager, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosedError

from fpga_monitor.models.sample import TelemetrySample
from fpga_monitor.models.state import ConnectionState
from fpga_monitor.stream.decoder import DecodeError, FrameDecoder

if TYPE_CHECKING:
    from fpga_monitor.state.store import StateStore


logger = logging.getLogger(__name__)


Connector = Callable[[str], AsyncContextManager[Any]]


def default_connector() -> Connector:
    """Connector used in production: ``websockets.connect`` with keepalive."""
    return functools.partial(
        websockets.connect,
        ping_interval=20,
        ping_timeout=10,
        close_timeout=5,
    )


class ConnectionManagerMetrics:
    """Metrics for ConnectionManager observability."""

    __slots__ = (
        "frames_received",
        "reconnect_count",
        "last_sequence_number",
        "validation_warnings",
        "parse_errors",
        "connections_opened",
    )

    def __init__(self) -> None:
        self.frames_received: int = 0
        self.reconnect_count: int = 0
        self.last_sequence_number: Optional[int] = None
        self.validation_warnings: int = 0
        self.parse_errors: int = 0
        self.connections_opened: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "frames_received": self.frames_received,
            "reconnect_count": self.reconnect_count,
            "last_sequence_number": self.last_sequence_number,
            "validation_warnings": self.validation_warnings,
            "parse_errors": self.parse_errors,
            "connections_opened": self.connections_opened,
        }


class ConnectionManager:
    """
    Lifecycle owner of the telemetry stream connection.

    Attributes:
        url: WebSocket URL to connect to
        store: StateStore that receives samples and connection state
        state: Current connection state
        metrics: Operational metrics

    Example:
        store = StateStore()
        manager = ConnectionManager(
            url="ws://localhost:8000/ws/telemetry",
            store=store,
        )

        manager.start()
        ...
        await manager.stop()

        # Or scoped, with teardown on every exit path
        async with ConnectionManager(url, store) as manager:
            ...
    """

    def __init__(
        self,
        url: str,
        store: "StateStore",
        decoder: Optional[FrameDecoder] = None,
        reconnect_backoff_ms: int = 500,
        reconnect_backoff_max_ms: int = 30_000,
        backoff_factor: float = 2.0,
        backoff_jitter: float = 0.1,
        max_reconnect_attempts: int = 0,
        connector: Optional[Connector] = None,
    ) -> None:
        """
        Initialize connection manager.

        Args:
            url: WebSocket URL of the telemetry backend
            store: StateStore to route samples and state into
            decoder: Frame decoder (defaults to FrameDecoder())
            reconnect_backoff_ms: First reconnect delay
            reconnect_backoff_max_ms: Upper bound on the reconnect delay
            backoff_factor: Multiplier applied per consecutive failure
            backoff_jitter: Max random fraction added to each delay
            max_reconnect_attempts: Max consecutive attempts (0 = unlimited)
            connector: Callable returning an async context manager that
                yields an async-iterable connection with ``close()``
        """
        if reconnect_backoff_ms <= 0:
            raise ValueError("reconnect_backoff_ms must be positive")
        if reconnect_backoff_max_ms < reconnect_backoff_ms:
            raise ValueError("reconnect_backoff_max_ms must be >= reconnect_backoff_ms")
        if backoff_factor < 1.0:
            raise ValueError("backoff_factor must be >= 1.0")
        if not 0.0 <= backoff_jitter <= 1.0:
            raise ValueError("backoff_jitter must be in [0, 1]")

        self.url = url
        self.store = store
        self.decoder = decoder if decoder is not None else FrameDecoder()
        self.reconnect_backoff_ms = reconnect_backoff_ms
        self.reconnect_backoff_max_ms = reconnect_backoff_max_ms
        self.backoff_factor = backoff_factor
        self.backoff_jitter = backoff_jitter
        self.max_reconnect_attempts = max_reconnect_attempts
        self._connector = connector if connector is not None else default_connector()

        # State
        self._state: ConnectionState = ConnectionState.DISCONNECTED
        self._websocket: Optional[Any] = None
        self._running: bool = False
        self._task: Optional[asyncio.Task] = None
        self._wakeup: asyncio.Event = asyncio.Event()
        self._failures: int = 0
        self._stopping: Optional[asyncio.Future] = None
        self._restart_pending: bool = False

        # Metrics
        self.metrics = ConnectionManagerMetrics()

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def connected(self) -> bool:
        """Whether currently connected to the telemetry backend."""
        return self._state is ConnectionState.CONNECTED

    @property
    def running(self) -> bool:
        """Whether the connection task is live."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """
        Start the connection task.

        No-op while a connection task is already live. If the task is
        waiting out a reconnect backoff, the wait is cut short instead.
        If a stop() is still tearing down, the new connection is opened
        once that teardown completes. Must be called from within a
        running event loop.
        """
        if self._stopping is not None:
            logger.info("start() during stop(), restarting after teardown")
            self._restart_pending = True
            return

        if self.running:
            if self._state is ConnectionState.RECONNECTING:
                logger.info("start() while reconnecting, skipping remaining backoff")
                self._wakeup.set()
            return

        self._running = True
        self._failures = 0
        self._wakeup.clear()

        logger.info(f"ConnectionManager starting, connecting to {self.url}")
        self._set_state(ConnectionState.CONNECTING)
        self._task = asyncio.get_running_loop().create_task(
            self._run(),
            name="telemetry_connection",
        )

    async def stop(self) -> None:
        """
        Stop the connection and release all resources.

        Publication stops before the first await, so no snapshot is
        delivered after this call begins other than the final
        DISCONNECTED state. Safe to call repeatedly; a call overlapping
        an in-flight stop() waits for that teardown to finish and
        cancels any restart requested during it.
        """
        self._restart_pending = False

        if self._stopping is not None:
            await asyncio.shield(self._stopping)
            return

        was_running = self._running
        self._running = False
        self._wakeup.set()

        task, self._task = self._task, None
        websocket, self._websocket = self._websocket, None

        if not was_running and task is None:
            return

        logger.info("ConnectionManager stopping...")
        self._stopping = asyncio.get_running_loop().create_future()

        try:
            if websocket is not None:
                try:
                    await websocket.close()
                except Exception as e:
                    logger.debug(f"Error while closing connection: {e}")

            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

            self._state = ConnectionState.DISCONNECTED
            self.store.apply_connection_state(ConnectionState.DISCONNECTED)
            logger.info("ConnectionManager stopped")
        finally:
            stopping, self._stopping = self._stopping, None
            stopping.set_result(None)

        if self._restart_pending:
            self._restart_pending = False
            self.start()

    async def __aenter__(self) -> "ConnectionManager":
        """Async context manager entry."""
        self.start()
        return self

    async def __aexit__(self, *args) -> None:
        """Async context manager exit."""
        await self.stop()

    def backoff_delay(self, attempt: int) -> float:
        """
        Delay in seconds before reconnect attempt number ``attempt``.

        Args:
            attempt: Consecutive failure count, starting at 1

        Returns:
            Bounded exponential delay with random jitter
        """
        base_ms = self.reconnect_backoff_ms * (self.backoff_factor ** max(0, attempt - 1))
        base_ms = min(base_ms, self.reconnect_backoff_max_ms)
        jitter_ms = random.uniform(0, base_ms * self.backoff_jitter)
        return (base_ms + jitter_ms) / 1000.0

    def _set_state(self, state: ConnectionState) -> None:
        """Record and publish a state change while running."""
        if not self._running or state is self._state:
            return
        logger.debug(f"Connection state {self._state.value} -> {state.value}")
        self._state = state
        self.store.apply_connection_state(state)

    async def _run(self) -> None:
        """Connect, consume and reconnect until stopped."""
        while self._running:
            self._set_state(ConnectionState.CONNECTING)

            try:
                await self._connect_and_consume()
                if self._running:
                    logger.warning("Connection closed by server")
            except Exception as e:
                if not self._running:
                    break
                logger.error(f"Connection error: {e}")

            if not self._running:
                break

            self._set_state(ConnectionState.DISCONNECTED)
            self._failures += 1

            # Check max attempts
            if (
                self.max_reconnect_attempts > 0
                and self._failures > self.max_reconnect_attempts
            ):
                logger.error(
                    f"Max reconnect attempts ({self.max_reconnect_attempts}) exceeded, "
                    f"staying disconnected"
                )
                break

            # Backoff before reconnect
            self.metrics.reconnect_count += 1
            delay = self.backoff_delay(self._failures)
            logger.info(
                f"Reconnecting in {delay:.1f}s "
                f"(attempt {self._failures})"
            )
            self._set_state(ConnectionState.RECONNECTING)

            self._wakeup.clear()
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=delay)
            except asyncio.TimeoutError:
                # Backoff complete, try again
                pass

    async def _connect_and_consume(self) -> None:
        """Connect to the WebSocket and consume messages until disconnect."""
        async with self._connector(self.url) as ws:
            if not self._running:
                return

            self._websocket = ws
            self._failures = 0
            self.metrics.connections_opened += 1
            logger.info(f"Connected to telemetry stream: {self.url}")
            self._set_state(ConnectionState.CONNECTED)

            try:
                async for message in ws:
                    if not self._running:
                        break
                    self.handle_message(message)
            except ConnectionClosedError as e:
                logger.warning(f"Connection closed with error: {e}")
                raise
            finally:
                self._websocket = None

    def handle_message(self, raw: Any) -> Optional[TelemetrySample]:
        """
        Decode one raw message and route it into the store.

        Args:
            raw: Raw payload from the WebSocket

        Returns:
            The accepted sample, or None if it was dropped
        """
        if not self._running:
            return None

        try:
            sample = self.decoder.decode(raw)
        except DecodeError as e:
            self.metrics.parse_errors += 1
            logger.warning(f"Dropping invalid telemetry frame: {e.reason}")
            return None

        self._check_sequence(sample.sequence_number)

        self.metrics.frames_received += 1
        self.metrics.last_sequence_number = sample.sequence_number
        logger.debug(f"Telemetry received: seq={sample.sequence_number}")

        self.store.apply_sample(sample)
        return sample

    def _check_sequence(self, sequence_number: int) -> None:
        """
        Log ordering anomalies. Samples are accepted regardless.
        """
        last = self.metrics.last_sequence_number
        if last is None:
            return

        expected = last + 1
        if sequence_number == expected:
            return

        self.metrics.validation_warnings += 1
        if sequence_number == last:
            logger.warning(f"Duplicate sequence number: {sequence_number}")
        elif sequence_number < last:
            logger.warning(
                f"Sequence number went backwards: got {sequence_number}, "
                f"previous was {last}"
            )
        else:
            gap = sequence_number - expected
            logger.warning(
                f"Sequence gap: got {sequence_number}, expected {expected} "
                f"(gap of {gap} readings)"
            )
