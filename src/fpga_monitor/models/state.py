"""
Monitor State Models
====================

This module defines the published state of the telemetry monitor.

Core Concepts:
    - ConnectionState: Discrete lifecycle states of the stream connection
    - Snapshot: Complete, immutable view handed to the presentation layer

Connection Lifecycle:
    DISCONNECTED → CONNECTING → CONNECTED
    CONNECTED → DISCONNECTED (close/error) → RECONNECTING → CONNECTING

A Snapshot is replaced wholesale on every accepted sample or connection
state change. Consumers must treat it as read-only.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from fpga_monitor.models.sample import WindowPoint


class ConnectionState(str, Enum):
    """
    Lifecycle states of the stream connection.

    Owned exclusively by the ConnectionManager and mirrored
    read-only into every Snapshot.
    """

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    RECONNECTING = "RECONNECTING"


@dataclass(frozen=True, slots=True)
class Snapshot:
    """
    Complete published state of the monitor.

    Attributes:
        window: Rolling window of chart points in arrival order
        mode: Latest compression mode (None before the first sample)
        latency_ms: Latest latency measurement
        compression_ratio: Latest compression ratio
        alert: Fault signal computed from the latest sample
        connection_state: Current stream connection state
        sequence_number: Sequence number of the latest accepted sample
        published_at: UNIX timestamp when this snapshot was built
    """

    window: Tuple[WindowPoint, ...] = ()
    mode: Optional[str] = None
    latency_ms: float = 0.0
    compression_ratio: float = 0.0
    alert: bool = False
    connection_state: ConnectionState = ConnectionState.DISCONNECTED
    sequence_number: Optional[int] = None
    published_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        """Export snapshot as a JSON-ready dict."""
        return {
            "window": [point.to_dict() for point in self.window],
            "mode": self.mode,
            "latency_ms": self.latency_ms,
            "compression_ratio": self.compression_ratio,
            "alert": self.alert,
            "connection_state": self.connection_state.value,
            "sequence_number": self.sequence_number,
            "published_at": self.published_at,
        }
