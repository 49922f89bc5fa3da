"""
Data Models
===========

Models for the FPGA telemetry monitor.

Models:
    Input:
        - TelemetryMessage: Pydantic schema for frames from the backend
        - SensorValues: Nested flow/pressure/vibration triple

    Sample:
        - TelemetrySample: Decoded, validated reading
        - WindowPoint: Chart point projected from a sample

    State:
        - ConnectionState: Enum of connection lifecycle states
        - Snapshot: Immutable published monitor state
"""

from fpga_monitor.models.input import SensorValues, TelemetryMessage
from fpga_monitor.models.sample import TelemetrySample, WindowPoint
from fpga_monitor.models.state import ConnectionState, Snapshot

__all__ = [
    # Input
    "SensorValues",
    "TelemetryMessage",
    # Sample
    "TelemetrySample",
    "WindowPoint",
    # State
    "ConnectionState",
    "Snapshot",
]
