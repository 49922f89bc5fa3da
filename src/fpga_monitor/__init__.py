"""
FPGA Telemetry Monitor
======================

Live telemetry monitoring client for the FPGA compression pipeline.

This package keeps one persistent WebSocket connection to the telemetry
backend, decodes incoming measurement frames, maintains a bounded rolling
window, derives a fault signal from threshold rules and publishes an
immutable snapshot of current state to presentation clients.

Components:
    - stream: Frame decoding, rolling window and connection lifecycle
    - signals: Fault predicate
    - state: Snapshot store with subscriber notification
    - main: FastAPI service exposing snapshots over HTTP and WebSocket

Example:
    from fpga_monitor.config import load_config
    from fpga_monitor.main import build_monitor

    manager = build_monitor(load_config())
    manager.store.subscribe(print)

    async with manager:
        ...
"""

__version__ = "0.1.0"
__author__ = "FPGA Telemetry Project"

__all__ = [
    "__version__",
]
