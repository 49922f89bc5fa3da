"""
State Store
===========

Holds the latest published Snapshot and notifies subscribers on change.

The store composes the WindowBuffer and the FaultEvaluator:
    - apply_sample: window append + fault evaluation + scalar fields
    - apply_connection_state: connection field only

Delivery Rules:
    - Every update builds a NEW Snapshot; the previous one is never mutated
    - Subscribers are called synchronously, in publish order
    - An update issued from inside a subscriber is queued and delivered
      after the current snapshot has reached every subscriber
    - A failing subscriber is logged and does not affect the others
"""

import logging
import time
from collections import deque
from dataclasses import replace
from typing import Callable, Deque, List, Optional

from fpga_monitor.models.sample import TelemetrySample, WindowPoint
from fpga_monitor.models.state import ConnectionState, Snapshot
from fpga_monitor.signals.fault import FaultEvaluator
from fpga_monitor.stream.window import WindowBuffer


logger = logging.getLogger(__name__)


SnapshotCallback = Callable[[Snapshot], None]


class StateStore:
    """
    Single source of truth for the monitor's published state.

    Attributes:
        window: WindowBuffer holding the rolling sample history
        evaluator: FaultEvaluator applied to every sample

    Example:
        store = StateStore(WindowBuffer(maxsize=41), FaultEvaluator())
        unsubscribe = store.subscribe(lambda snap: render(snap))

        store.apply_sample(sample)
        print(store.get_snapshot().alert)

        unsubscribe()
    """

    def __init__(
        self,
        window: Optional[WindowBuffer] = None,
        evaluator: Optional[FaultEvaluator] = None,
    ) -> None:
        self.window = window if window is not None else WindowBuffer()
        self.evaluator = evaluator if evaluator is not None else FaultEvaluator()

        self._snapshot = Snapshot()
        self._subscribers: List[SnapshotCallback] = []
        self._pending: Deque[Snapshot] = deque()
        self._publishing: bool = False
        self._published_count: int = 0
        self._subscriber_errors: int = 0

    @property
    def subscriber_count(self) -> int:
        """Number of registered subscribers."""
        return len(self._subscribers)

    def get_snapshot(self) -> Snapshot:
        """Return the latest published snapshot."""
        return self._snapshot

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        """
        Register a subscriber for future snapshots.

        Args:
            callback: Called with each new Snapshot

        Returns:
            Callable that removes the subscriber. Safe to call twice.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

        return unsubscribe

    def apply_sample(self, sample: TelemetrySample) -> Snapshot:
        """
        Apply a decoded sample and publish the resulting snapshot.

        Args:
            sample: Validated telemetry sample

        Returns:
            The newly published Snapshot
        """
        samples = self.window.append(sample)
        alert = self.evaluator.evaluate(sample)

        snapshot = Snapshot(
            window=tuple(WindowPoint.from_sample(s) for s in samples),
            mode=sample.compression_mode,
            latency_ms=sample.latency_ms,
            compression_ratio=sample.compression_ratio,
            alert=alert,
            connection_state=self._snapshot.connection_state,
            sequence_number=sample.sequence_number,
        )
        self._publish(snapshot)
        return snapshot

    def apply_connection_state(self, state: ConnectionState) -> Snapshot:
        """
        Publish a snapshot carrying a new connection state.

        Args:
            state: New connection state

        Returns:
            The newly published Snapshot
        """
        snapshot = replace(self._snapshot, connection_state=state, published_at=time.time())
        self._publish(snapshot)
        return snapshot

    def _publish(self, snapshot: Snapshot) -> None:
        """Replace the current snapshot and deliver it in order."""
        self._snapshot = snapshot
        self._pending.append(snapshot)

        # Re-entrant call from a subscriber: the outer loop delivers it
        if self._publishing:
            return

        self._publishing = True
        try:
            while self._pending:
                current = self._pending.popleft()
                self._published_count += 1
                for callback in list(self._subscribers):
                    try:
                        callback(current)
                    except Exception as e:
                        self._subscriber_errors += 1
                        logger.warning(f"Subscriber {callback!r} failed: {e}", exc_info=True)
        finally:
            self._publishing = False

    def metrics(self) -> dict:
        """
        Get store metrics for observability.

        Returns:
            Dict with subscriber count, published count and subscriber errors
        """
        return {
            "subscribers": self.subscriber_count,
            "published_count": self._published_count,
            "subscriber_errors": self._subscriber_errors,
        }
