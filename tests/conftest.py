"""
Test Configuration
==================

Pytest fixtures and test configuration for the FPGA telemetry monitor.
"""

import asyncio
import json
from contextlib import asynccontextmanager

import pytest

from fpga_monitor.models.sample import TelemetrySample


_CLOSE = object()


class FakeStream:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self) -> None:
        self._inbox: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def feed(self, raw) -> None:
        """Deliver a raw message to the consumer."""
        self._inbox.put_nowait(raw)

    def fail(self, exc: Exception) -> None:
        """Make the next receive raise ``exc``."""
        self._inbox.put_nowait(exc)

    def end(self) -> None:
        """Close the stream from the server side."""
        self._inbox.put_nowait(_CLOSE)

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(_CLOSE)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._inbox.get()
        if item is _CLOSE:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise item
        return item


class FakeConnector:
    """
    Connector returning FakeStreams.

    The first ``refuse`` connection attempts fail with OSError.
    """

    def __init__(self, refuse: int = 0) -> None:
        self.refuse = refuse
        self.calls = 0
        self.urls = []
        self.streams = []

    def __call__(self, url: str):
        self.calls += 1
        self.urls.append(url)
        return self._session()

    @property
    def live_streams(self):
        return [stream for stream in self.streams if not stream.closed]

    @asynccontextmanager
    async def _session(self):
        if self.refuse > 0:
            self.refuse -= 1
            raise OSError("connection refused")

        stream = FakeStream()
        self.streams.append(stream)
        try:
            yield stream
        finally:
            stream.closed = True


def make_frame(
    sequence_number: int = 1,
    flow: float = 100.0,
    pressure: float = 30000.0,
    vibration: float = 0.5,
    compression_mode: str = "delta",
    latency: float = 12.5,
    compression_ratio: float = 3.2,
) -> str:
    """Build a wire frame as the backend sends it."""
    return json.dumps({
        "sequence_number": sequence_number,
        "sensor_values": {
            "flow": flow,
            "pressure": pressure,
            "vibration": vibration,
        },
        "compression_mode": compression_mode,
        "latency": latency,
        "compression_ratio": compression_ratio,
    })


def make_sample(
    sequence_number: int = 1,
    flow: float = 100.0,
    pressure: float = 30000.0,
    vibration: float = 0.5,
) -> TelemetrySample:
    """Build a decoded sample."""
    return TelemetrySample(
        sequence_number=sequence_number,
        flow=flow,
        pressure=pressure,
        vibration=vibration,
        compression_mode="delta",
        latency_ms=12.5,
        compression_ratio=3.2,
    )


@pytest.fixture
def frame_factory():
    """Provide the wire frame builder."""
    return make_frame


@pytest.fixture
def sample_factory():
    """Provide the sample builder."""
    return make_sample


@pytest.fixture
def connector():
    """Provide a fake connector that always accepts."""
    return FakeConnector()


@pytest.fixture
def eventually():
    """Provide an async helper that waits until a predicate holds."""

    async def wait(predicate, timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.001)

    return wait


@pytest.fixture
def connector_factory():
    """Provide the fake connector class for custom refusal counts."""
    return FakeConnector
