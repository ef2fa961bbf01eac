#!/usr/bin/env python3
"""
Dashboard Watcher
=================

Standalone script that follows a running dashboard service over /ws/state.

This script:
    1. Connects to the dashboard websocket
    2. Validates every snapshot it receives
    3. Logs status, series stats and grid summary per snapshot
    4. Reports a final summary

Prerequisites:
    - The dashboard service must be running (python -m crowd_dashboard.main)

Usage:
    python scripts/watch_dashboard.py --duration 120
    python scripts/watch_dashboard.py --url ws://localhost:8080/ws/state
"""

import argparse
import asyncio
import json
import logging
import os
import sys
import time

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from crowd_dashboard.models.output import DashboardSnapshot, PipelineStatus


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


def describe(snapshot: DashboardSnapshot) -> str:
    """One-line summary of a snapshot."""
    parts = [f"token={snapshot.token}", f"status={snapshot.status.value}"]

    if snapshot.status in (PipelineStatus.ERROR, PipelineStatus.EMPTY):
        parts.append(f"[{snapshot.error_code.value}] {snapshot.error_message}")
        return " ".join(parts)

    if snapshot.time_series:
        stats = snapshot.stats
        parts.append(
            f"points={len(snapshot.time_series)} current={stats.current:.0f} "
            f"max={stats.maximum:.0f} avg={stats.average:.0f} min={stats.minimum:.0f}"
        )
    if snapshot.grid_summary:
        summary = snapshot.grid_summary
        parts.append(
            f"grid={summary.width_m:.0f}x{summary.height_m:.0f}m "
            f"density={summary.density_min:.2f}-{summary.density_max:.2f} "
            f"cameras={summary.camera_count}"
        )
    elif snapshot.grid_message:
        parts.append(snapshot.grid_message)
    if snapshot.missing_cameras:
        parts.append(f"missing={', '.join(snapshot.missing_cameras)}")

    return " ".join(parts)


async def watch(url: str, duration: int) -> dict:
    """
    Follow the snapshot stream.

    Args:
        url: WebSocket URL of the dashboard service
        duration: Seconds to watch

    Returns:
        Counters by snapshot status
    """
    logger.info("=" * 60)
    logger.info("Dashboard Watcher")
    logger.info("=" * 60)
    logger.info(f"URL: {url}")
    logger.info(f"Duration: {duration} seconds")
    logger.info("=" * 60)

    counts = {status.value: 0 for status in PipelineStatus}
    counts["invalid"] = 0
    start_time = time.time()

    try:
        async with websockets.connect(url, ping_interval=20, ping_timeout=10) as ws:
            while True:
                remaining = duration - (time.time() - start_time)
                if remaining <= 0:
                    logger.info(f"Watch duration ({duration}s) reached")
                    break

                try:
                    raw = await asyncio.wait_for(ws.recv(), timeout=remaining)
                except asyncio.TimeoutError:
                    continue

                try:
                    snapshot = DashboardSnapshot.model_validate(json.loads(raw))
                except (json.JSONDecodeError, ValidationError) as e:
                    counts["invalid"] += 1
                    logger.error(f"Invalid snapshot: {e}")
                    continue

                counts[snapshot.status.value] += 1
                logger.info(describe(snapshot))

    except ConnectionClosed as e:
        logger.warning(f"Connection closed: {e}")
    except OSError as e:
        logger.error(f"Could not connect to {url}: {e}")

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {time.time() - start_time:.1f} seconds")
    for status, count in counts.items():
        logger.info(f"  {status}: {count}")

    return counts


def main() -> None:
    parser = argparse.ArgumentParser(description="Follow dashboard snapshots")
    parser.add_argument(
        "--url",
        default=os.environ.get("DASHBOARD_WS_URL", "ws://localhost:8080/ws/state"),
        help="Dashboard websocket URL",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=120,
        help="Seconds to watch",
    )
    args = parser.parse_args()

    try:
        counts = asyncio.run(watch(args.url, args.duration))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)

    sys.exit(1 if counts["error"] or counts["invalid"] else 0)


if __name__ == "__main__":
    main()
