"""
Telemetry Sample Model
======================

Internal sample representation for the ingestion pipeline.

Design Rules:
    - This is the ONLY reading format passed downstream of the decoder
    - Immutable (frozen) so window snapshots can share instances safely
    - Field names follow Python conventions, not the wire schema
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TelemetrySample:
    """
    Validated telemetry reading.

    Attributes:
        sequence_number: Source-assigned ordinal (not guaranteed unique
            or monotonic)
        flow: Flow reading
        pressure: Pressure reading
        vibration: Vibration reading
        compression_mode: Label of the active encoding mode
        latency_ms: End-to-end delay in milliseconds
        compression_ratio: Achieved compression ratio
    """

    sequence_number: int
    flow: float
    pressure: float
    vibration: float
    compression_mode: str
    latency_ms: float
    compression_ratio: float


@dataclass(frozen=True, slots=True)
class WindowPoint:
    """One chart point of the rolling window, keyed by sequence number."""

    time: int
    flow: float
    pressure: float
    vibration: float

    @classmethod
    def from_sample(cls, sample: TelemetrySample) -> "WindowPoint":
        return cls(
            time=sample.sequence_number,
            flow=sample.flow,
            pressure=sample.pressure,
            vibration=sample.vibration,
        )

    def to_dict(self) -> dict:
        return {
            "time": self.time,
            "flow": self.flow,
            "pressure": self.pressure,
            "vibration": self.vibration,
        }
