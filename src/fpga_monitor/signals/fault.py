"""
Fault Evaluation
================

Threshold-based fault signal for telemetry samples.

Rule:
    alert = flow > flow_max OR pressure < pressure_min

Both comparisons are strict, so a reading sitting exactly on a threshold
is not a fault. There is no hysteresis or dwell time: the alert follows
each sample and may toggle from one reading to the next.
"""

import logging
from dataclasses import dataclass

from fpga_monitor.models.sample import TelemetrySample


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FaultThresholds:
    """
    Thresholds for the fault predicate.

    build_monitor() copies these from ``Settings.thresholds``
    (ThresholdsConfig); the defaults here match it.
    """

    flow_max: float = 7000.0
    pressure_min: float = 25000.0


def is_fault(flow: float, pressure: float, thresholds: FaultThresholds) -> bool:
    """Return True when flow is above or pressure is below its threshold."""
    return flow > thresholds.flow_max or pressure < thresholds.pressure_min


class FaultEvaluator:
    """
    Stateless fault predicate over telemetry samples.

    Example:
        evaluator = FaultEvaluator(FaultThresholds(flow_max=6500.0))
        alert = evaluator.evaluate(sample)
    """

    def __init__(self, thresholds: FaultThresholds = FaultThresholds()) -> None:
        self.thresholds = thresholds
        logger.info(
            f"FaultEvaluator initialized: "
            f"flow_max={thresholds.flow_max}, "
            f"pressure_min={thresholds.pressure_min}"
        )

    def evaluate(self, sample: TelemetrySample) -> bool:
        """
        Evaluate the fault predicate for one sample.

        Args:
            sample: Decoded telemetry sample

        Returns:
            True if the sample is a fault reading
        """
        return is_fault(sample.flow, sample.pressure, self.thresholds)
