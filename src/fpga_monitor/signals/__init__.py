"""
Signals Module
==============

Signal derivation over decoded telemetry samples.

This module provides the fault predicate that turns each sample into
the binary alert published with every snapshot.
"""

from fpga_monitor.signals.fault import FaultEvaluator, FaultThresholds, is_fault

__all__ = ["FaultEvaluator", "FaultThresholds", "is_fault"]
