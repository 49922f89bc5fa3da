"""
Frame Decoder
=============

Dedicated module for turning raw WebSocket payloads into TelemetrySamples.

Design Rules:
    - This is the ONLY place in the codebase that parses wire frames
    - Pure transform: no logging, no counters, no side effects
    - Fails with DecodeError on malformed or incomplete frames; the caller
      decides whether to drop, count or log
"""

from typing import Union

from pydantic import ValidationError

from fpga_monitor.models.input import TelemetryMessage
from fpga_monitor.models.sample import TelemetrySample


RawPayload = Union[str, bytes, bytearray]


class DecodeError(Exception):
    """Raised when a frame cannot be decoded into a TelemetrySample."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


def _summarize(exc: ValidationError) -> str:
    """Compress a ValidationError into a one-line reason."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "<root>"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


class FrameDecoder:
    """
    Stateless decoder for telemetry frames.

    Example:
        decoder = FrameDecoder()

        try:
            sample = decoder.decode(raw)
        except DecodeError as e:
            logger.warning(f"Dropping frame: {e.reason}")
    """

    def decode(self, raw: RawPayload) -> TelemetrySample:
        """
        Parse and validate a raw payload.

        Args:
            raw: Text or binary payload received from the stream

        Returns:
            Decoded TelemetrySample

        Raises:
            DecodeError: If the payload is not valid JSON, is not an object,
                or misses / mistypes a required field
        """
        if not isinstance(raw, (str, bytes, bytearray)):
            raise DecodeError(f"unsupported payload type: {type(raw).__name__}")

        try:
            message = TelemetryMessage.model_validate_json(raw)
        except ValidationError as e:
            raise DecodeError(_summarize(e)) from e

        return TelemetrySample(
            sequence_number=message.sequence_number,
            flow=message.sensor_values.flow,
            pressure=message.sensor_values.pressure,
            vibration=message.sensor_values.vibration,
            compression_mode=message.compression_mode,
            latency_ms=message.latency,
            compression_ratio=message.compression_ratio,
        )
