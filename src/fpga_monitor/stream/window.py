"""
Window Buffer
=============

Bounded rolling history of decoded telemetry samples.

Design Rules:
    - Fixed maximum size (evicts oldest on overflow)
    - Arrival order only: no reordering by sequence number, no dedup
    - Returns immutable tuples, never the internal storage
    - Exposes minimal metrics for observability
"""

from collections import deque
from typing import Deque, Tuple

from fpga_monitor.models.sample import TelemetrySample


DEFAULT_WINDOW_SIZE = 41


class WindowBuffer:
    """
    Bounded, append-only window of samples.

    Backed by a ``deque`` with ``maxlen`` so each append is O(1) and
    eviction of the oldest sample happens in the same step.

    Attributes:
        maxsize: Maximum number of samples kept
        evicted_count: Number of samples evicted due to overflow

    Example:
        window = WindowBuffer(maxsize=41)
        samples = window.append(sample)
    """

    def __init__(self, maxsize: int = DEFAULT_WINDOW_SIZE) -> None:
        """
        Initialize window buffer.

        Args:
            maxsize: Maximum samples to keep. Must be >= 1.
        """
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")

        self._maxsize = maxsize
        self._samples: Deque[TelemetrySample] = deque(maxlen=maxsize)
        self._evicted_count: int = 0
        self._total_appended: int = 0

    @property
    def maxsize(self) -> int:
        """Maximum window size."""
        return self._maxsize

    @property
    def size(self) -> int:
        """Current number of samples in the window."""
        return len(self._samples)

    @property
    def evicted_count(self) -> int:
        """Number of samples evicted due to overflow."""
        return self._evicted_count

    @property
    def total_appended(self) -> int:
        """Total samples ever appended."""
        return self._total_appended

    def __len__(self) -> int:
        return len(self._samples)

    def append(self, sample: TelemetrySample) -> Tuple[TelemetrySample, ...]:
        """
        Append a sample, evicting the oldest if the window is full.

        Args:
            sample: Sample to append

        Returns:
            The new window contents, oldest first.
        """
        self._total_appended += 1

        if len(self._samples) == self._maxsize:
            self._evicted_count += 1

        self._samples.append(sample)
        return tuple(self._samples)

    def samples(self) -> Tuple[TelemetrySample, ...]:
        """Current window contents, oldest first."""
        return tuple(self._samples)

    def clear(self) -> int:
        """
        Remove all samples from the window.

        Returns:
            Number of samples cleared.
        """
        cleared = len(self._samples)
        self._samples.clear()
        return cleared

    def metrics(self) -> dict:
        """
        Get window metrics for observability.

        Returns:
            Dict with size, maxsize, evicted_count, total_appended
        """
        return {
            "size": self.size,
            "maxsize": self._maxsize,
            "evicted_count": self._evicted_count,
            "total_appended": self._total_appended,
        }
