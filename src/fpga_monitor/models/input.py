"""
Input Message Schema
====================

This module defines the Pydantic model for telemetry frames received from
the FPGA telemetry backend.

Input Contract (one frame per WebSocket message):
    {
        "sequence_number": 1234,
        "sensor_values": {
            "flow": 5400.0,
            "pressure": 31000.0,
            "vibration": 0.42
        },
        "compression_mode": "delta",
        "latency": 12.5,
        "compression_ratio": 3.2
    }

Validation is strict: numeric fields must be JSON numbers (not strings or
booleans), and NaN/Infinity are rejected. Unknown fields are ignored.

Example:
    from fpga_monitor.models.input import TelemetryMessage

    raw = await websocket.recv()
    message = TelemetryMessage.model_validate_json(raw)

    print(f"Received reading {message.sequence_number}")
"""

from pydantic import BaseModel, ConfigDict, Field


class SensorValues(BaseModel):
    """
    Sensor reading triple nested under ``sensor_values``.

    Attributes:
        flow: Flow reading
        pressure: Pressure reading
        vibration: Vibration reading
    """

    model_config = ConfigDict(strict=True, allow_inf_nan=False)

    flow: float = Field(..., description="Flow reading")
    pressure: float = Field(..., description="Pressure reading")
    vibration: float = Field(..., description="Vibration reading")


class TelemetryMessage(BaseModel):
    """
    Schema for telemetry frames received from the backend stream.

    Any message that does not conform to this schema is rejected by
    the frame decoder and never reaches the state store.

    Attributes:
        sequence_number: Source-assigned ordinal of the reading
        sensor_values: Flow / pressure / vibration triple
        compression_mode: Label of the active encoding mode
        latency: End-to-end delay in milliseconds
        compression_ratio: Achieved compression ratio
    """

    model_config = ConfigDict(
        strict=True,
        allow_inf_nan=False,
        json_schema_extra={
            "example": {
                "sequence_number": 1234,
                "sensor_values": {
                    "flow": 5400.0,
                    "pressure": 31000.0,
                    "vibration": 0.42,
                },
                "compression_mode": "delta",
                "latency": 12.5,
                "compression_ratio": 3.2,
            }
        },
    )

    sequence_number: int = Field(
        ...,
        description="Source-assigned ordinal of the reading",
    )

    sensor_values: SensorValues = Field(
        ...,
        description="Sensor reading triple",
    )

    compression_mode: str = Field(
        ...,
        description="Short label of the active encoding mode",
    )

    latency: float = Field(
        ...,
        description="End-to-end delay in milliseconds",
    )

    compression_ratio: float = Field(
        ...,
        description="Achieved compression ratio",
    )
