"""
Stream Module
=============

WebSocket stream consumption and sample buffering components.

This module provides the ingestion layer for the FPGA telemetry monitor:
    - FrameDecoder: Wire frame -> TelemetrySample (raises DecodeError)
    - WindowBuffer: Bounded rolling window (evicts oldest on overflow)
    - ConnectionManager: WebSocket client with reconnection and backoff

Example:
    from fpga_monitor.state import StateStore
    from fpga_monitor.stream import ConnectionManager

    store = StateStore()
    store.subscribe(lambda snapshot: print(snapshot.alert))

    async with ConnectionManager("ws://localhost:8000/ws/telemetry", store):
        await asyncio.sleep(60)
"""

from fpga_monitor.stream.decoder import DecodeError, FrameDecoder
from fpga_monitor.stream.window import DEFAULT_WINDOW_SIZE, WindowBuffer
from fpga_monitor.stream.manager import (
    ConnectionManager,
    ConnectionManagerMetrics,
    default_connector,
)


__all__ = [
    "DecodeError",
    "FrameDecoder",
    "DEFAULT_WINDOW_SIZE",
    "WindowBuffer",
    "ConnectionManager",
    "ConnectionManagerMetrics",
    "default_connector",
]
