#!/usr/bin/env python3
"""
Stream Probe Script
===================

Standalone script to watch a live telemetry endpoint.

This script:
    1. Connects to the configured telemetry backend
    2. Runs for a configurable duration
    3. Logs ingestion stats every N seconds
    4. Reports final summary

Prerequisites:
    - The telemetry backend must be reachable at the selected URL
    - Install the package: pip install -e .

Usage:
    python scripts/probe_stream.py --duration 120
    python scripts/probe_stream.py --env production
    python scripts/probe_stream.py --url ws://localhost:8000/ws/telemetry
"""

import argparse
import asyncio
import logging
import sys
import time

from fpga_monitor.config import Environment, load_config
from fpga_monitor.main import build_monitor


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


async def run_probe(
    url: str,
    duration: int,
    report_interval: int,
) -> dict:
    """
    Run the probe.

    Args:
        url: WebSocket URL of the telemetry backend
        duration: Probe duration in seconds
        report_interval: Seconds between progress reports

    Returns:
        Final metrics dict
    """
    settings = load_config()
    settings.stream.url = url

    logger.info("=" * 60)
    logger.info("Telemetry Stream Probe")
    logger.info("=" * 60)
    logger.info(f"Stream URL: {url}")
    logger.info(f"Duration: {duration} seconds")
    logger.info(f"Window size: {settings.window.size}")
    logger.info(f"Report interval: {report_interval} seconds")
    logger.info("=" * 60)

    manager = build_monitor(settings)
    store = manager.store

    alerts = 0

    def count_alerts(snapshot) -> None:
        nonlocal alerts
        if snapshot.alert:
            alerts += 1

    store.subscribe(count_alerts)

    start_time = time.time()
    last_report_time = start_time
    last_frame_count = 0

    async with manager:
        while True:
            elapsed = time.time() - start_time

            if elapsed >= duration:
                logger.info(f"Probe duration ({duration}s) reached")
                break

            # Report progress
            time_since_report = time.time() - last_report_time
            if time_since_report >= report_interval:
                metrics = manager.metrics
                snapshot = store.get_snapshot()

                frames_since_last = metrics.frames_received - last_frame_count
                rate = frames_since_last / time_since_report if time_since_report > 0 else 0

                logger.info("-" * 40)
                logger.info(f"Progress Report (elapsed: {elapsed:.0f}s)")
                logger.info(f"  State: {manager.state.value}")
                logger.info(f"  Frames received: {metrics.frames_received}")
                logger.info(f"  Current rate: {rate:.1f}/s")
                logger.info(f"  Last sequence number: {metrics.last_sequence_number}")
                logger.info(f"  Mode: {snapshot.mode}")
                logger.info(f"  Latency: {snapshot.latency_ms} ms")
                logger.info(f"  Compression ratio: {snapshot.compression_ratio}")
                logger.info(f"  Alert: {snapshot.alert}")
                logger.info(f"  Reconnects: {metrics.reconnect_count}")
                logger.info(f"  Parse errors: {metrics.parse_errors}")

                last_report_time = time.time()
                last_frame_count = metrics.frames_received

            await asyncio.sleep(0.5)

    # Final report
    total_time = time.time() - start_time
    metrics = manager.metrics
    window_metrics = store.window.metrics()

    avg_rate = metrics.frames_received / total_time if total_time > 0 else 0

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {total_time:.1f} seconds")
    logger.info(f"Frames received: {metrics.frames_received}")
    logger.info(f"Average rate: {avg_rate:.1f}/s")
    logger.info(f"Last sequence number: {metrics.last_sequence_number}")
    logger.info(f"Fault snapshots: {alerts}")
    logger.info(f"Reconnections: {metrics.reconnect_count}")
    logger.info(f"Sequence warnings: {metrics.validation_warnings}")
    logger.info(f"Parse errors: {metrics.parse_errors}")
    logger.info(f"Window evictions: {window_metrics['evicted_count']}")
    logger.info("=" * 60)

    if metrics.frames_received > 0:
        logger.info("PROBE PASSED - Frames received successfully")
    else:
        logger.error("PROBE FAILED - No frames received")

    return {
        "duration": total_time,
        "frames_received": metrics.frames_received,
        "avg_rate": avg_rate,
        "reconnections": metrics.reconnect_count,
        "validation_warnings": metrics.validation_warnings,
        "parse_errors": metrics.parse_errors,
    }


def main():
    settings = load_config()

    parser = argparse.ArgumentParser(
        description="Probe a live FPGA telemetry stream"
    )
    parser.add_argument(
        "--url",
        type=str,
        default=None,
        help="WebSocket URL (default: selected by --env / config)",
    )
    parser.add_argument(
        "--env",
        choices=["production", "development"],
        default=None,
        help="Deployment environment used to pick the endpoint",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=120,
        help="Probe duration in seconds (default: 120)",
    )
    parser.add_argument(
        "--report-interval",
        type=int,
        default=10,
        help="Seconds between progress reports (default: 10)",
    )

    args = parser.parse_args()

    if args.env:
        settings.stream.environment = Environment(args.env)
    url = args.url or settings.stream.resolved_url

    result = asyncio.run(run_probe(
        url=url,
        duration=args.duration,
        report_interval=args.report_interval,
    ))

    sys.exit(0 if result["frames_received"] > 0 else 1)


if __name__ == "__main__":
    main()
