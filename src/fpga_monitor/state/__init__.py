"""
State Module
============

Published monitor state.

The StateStore is the only writer of Snapshots; the presentation layer
subscribes to it and reads snapshots, never the window or the connection.
"""

from fpga_monitor.state.store import SnapshotCallback, StateStore

__all__ = ["SnapshotCallback", "StateStore"]
