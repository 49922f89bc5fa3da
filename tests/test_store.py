"""
State Store Tests
=================

Snapshot building and subscriber notification.
"""

import dataclasses

import pytest

from fpga_monitor.models.sample import WindowPoint
from fpga_monitor.models.state import ConnectionState, Snapshot
from fpga_monitor.signals.fault import FaultEvaluator, FaultThresholds
from fpga_monitor.state.store import StateStore
from fpga_monitor.stream.window import WindowBuffer


class TestInitialSnapshot:
    """Tests for the snapshot before any event."""

    def test_initial_snapshot(self):
        """Verify the store starts empty and disconnected."""
        snapshot = StateStore().get_snapshot()

        assert snapshot.window == ()
        assert snapshot.mode is None
        assert snapshot.latency_ms == 0.0
        assert snapshot.compression_ratio == 0.0
        assert snapshot.alert is False
        assert snapshot.connection_state is ConnectionState.DISCONNECTED
        assert snapshot.sequence_number is None


class TestApplySample:
    """Tests for apply_sample."""

    def test_updates_all_fields(self, sample_factory):
        """Verify scalar fields, window and alert follow the sample."""
        store = StateStore()
        sample = dataclasses.replace(
            sample_factory(sequence_number=4, flow=8000.0),
            compression_mode="huffman",
            latency_ms=9.5,
            compression_ratio=4.0,
        )

        snapshot = store.apply_sample(sample)

        assert snapshot.mode == "huffman"
        assert snapshot.latency_ms == 9.5
        assert snapshot.compression_ratio == 4.0
        assert snapshot.alert is True
        assert snapshot.sequence_number == 4
        assert snapshot.window == (
            WindowPoint(time=4, flow=8000.0, pressure=30000.0, vibration=0.5),
        )
        assert store.get_snapshot() is snapshot

    def test_keeps_connection_state(self, sample_factory):
        """Verify samples do not reset the connection field."""
        store = StateStore()
        store.apply_connection_state(ConnectionState.CONNECTED)

        snapshot = store.apply_sample(sample_factory())

        assert snapshot.connection_state is ConnectionState.CONNECTED

    def test_window_is_bounded(self, sample_factory):
        """Verify the published window respects the buffer size."""
        store = StateStore(window=WindowBuffer(maxsize=3))

        for i in range(1, 11):
            snapshot = store.apply_sample(sample_factory(sequence_number=i))

        assert [p.time for p in snapshot.window] == [8, 9, 10]

    def test_uses_configured_thresholds(self, sample_factory):
        """Verify the injected evaluator decides the alert."""
        store = StateStore(evaluator=FaultEvaluator(FaultThresholds(flow_max=10.0)))

        assert store.apply_sample(sample_factory(flow=50.0)).alert is True

    def test_previous_snapshot_is_untouched(self, sample_factory):
        """Verify each update replaces the snapshot instead of mutating it."""
        store = StateStore()
        first = store.apply_sample(sample_factory(sequence_number=1, flow=8000.0))
        second = store.apply_sample(sample_factory(sequence_number=2))

        assert first is not second
        assert first.alert is True
        assert [p.time for p in first.window] == [1]
        assert [p.time for p in second.window] == [1, 2]

    def test_snapshot_is_frozen(self, sample_factory):
        """Verify subscribers cannot mutate a snapshot."""
        snapshot = StateStore().apply_sample(sample_factory())

        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.alert = True


class TestApplyConnectionState:
    """Tests for apply_connection_state."""

    def test_updates_only_connection_state(self, sample_factory):
        """Verify sample-derived fields are carried over."""
        store = StateStore()
        store.apply_sample(sample_factory(sequence_number=3, flow=8000.0))

        snapshot = store.apply_connection_state(ConnectionState.RECONNECTING)

        assert snapshot.connection_state is ConnectionState.RECONNECTING
        assert snapshot.alert is True
        assert snapshot.sequence_number == 3
        assert len(snapshot.window) == 1


class TestSubscribers:
    """Tests for subscribe / notification."""

    def test_notifies_in_publish_order(self, sample_factory):
        """Verify subscribers see every snapshot in order."""
        store = StateStore()
        seen = []
        store.subscribe(seen.append)

        store.apply_connection_state(ConnectionState.CONNECTED)
        store.apply_sample(sample_factory(sequence_number=1))
        store.apply_sample(sample_factory(sequence_number=2))

        assert [s.connection_state for s in seen] == [ConnectionState.CONNECTED] * 3
        assert [s.sequence_number for s in seen] == [None, 1, 2]

    def test_all_subscribers_receive_same_snapshot(self, sample_factory):
        """Verify fan-out to several subscribers."""
        store = StateStore()
        a, b = [], []
        store.subscribe(a.append)
        store.subscribe(b.append)

        snapshot = store.apply_sample(sample_factory())

        assert a == [snapshot]
        assert b == [snapshot]
        assert store.subscriber_count == 2

    def test_unsubscribe(self, sample_factory):
        """Verify unsubscribed callbacks stop receiving and unsubscribe is idempotent."""
        store = StateStore()
        seen = []
        unsubscribe = store.subscribe(seen.append)

        store.apply_sample(sample_factory(sequence_number=1))
        unsubscribe()
        unsubscribe()
        store.apply_sample(sample_factory(sequence_number=2))

        assert [s.sequence_number for s in seen] == [1]
        assert store.subscriber_count == 0

    def test_failing_subscriber_is_isolated(self, sample_factory):
        """Verify one failing subscriber does not block the others."""
        store = StateStore()
        seen = []

        def broken(snapshot: Snapshot) -> None:
            raise RuntimeError("render failed")

        store.subscribe(broken)
        store.subscribe(seen.append)

        store.apply_sample(sample_factory())

        assert len(seen) == 1
        assert store.metrics()["subscriber_errors"] == 1

    def test_reentrant_update_is_delivered_after_current(self, sample_factory):
        """Verify an update triggered by a subscriber does not overtake the current snapshot."""
        store = StateStore()
        first_seen, second_seen = [], []

        def reacting(snapshot: Snapshot) -> None:
            first_seen.append(snapshot.sequence_number)
            if snapshot.sequence_number == 1:
                store.apply_sample(sample_factory(sequence_number=2))

        store.subscribe(reacting)
        store.subscribe(lambda s: second_seen.append(s.sequence_number))

        store.apply_sample(sample_factory(sequence_number=1))

        assert first_seen == [1, 2]
        assert second_seen == [1, 2]
        assert store.get_snapshot().sequence_number == 2

    def test_metrics(self, sample_factory):
        """Verify published count tracks every snapshot."""
        store = StateStore()
        store.subscribe(lambda s: None)
        store.apply_sample(sample_factory())
        store.apply_connection_state(ConnectionState.CONNECTING)

        assert store.metrics() == {
            "subscribers": 1,
            "published_count": 2,
            "subscriber_errors": 0,
        }


class TestSnapshotExport:
    """Tests for Snapshot.to_dict."""

    def test_to_dict(self, sample_factory):
        """Verify the JSON projection used by the service layer."""
        store = StateStore()
        store.apply_connection_state(ConnectionState.CONNECTED)
        data = store.apply_sample(sample_factory(sequence_number=5)).to_dict()

        assert data["window"] == [
            {"time": 5, "flow": 100.0, "pressure": 30000.0, "vibration": 0.5}
        ]
        assert data["mode"] == "delta"
        assert data["latency_ms"] == 12.5
        assert data["compression_ratio"] == 3.2
        assert data["alert"] is False
        assert data["connection_state"] == "CONNECTED"
        assert data["sequence_number"] == 5
        assert isinstance(data["published_at"], float)
