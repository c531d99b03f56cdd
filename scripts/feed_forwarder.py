#!/usr/bin/env python3
"""
Feed forwarder for bench testing.

Connects to a running tracker (main.py --mode live) and sends simulated
anchor_readings rows, plus an occasional localization_results row, in the
length-prefixed JSON format the feed receiver expects.

Usage:
    python main.py --mode live
    python scripts/feed_forwarder.py --port 8765 --count 200
"""

import sys
import os
import time
import socket
import logging
import argparse

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config
from uwb_field.localization import create_default_layout, wall_clock_ms
from uwb_field.io import (
    MSG_ANCHOR_READING,
    MSG_LOCALIZATION_RESULT,
    ReadingSimulator,
    encode_message,
)

logging.basicConfig(
    level=getattr(logging, config.LOGGING_CONFIG["level"]),
    format=config.LOGGING_CONFIG["format"]
)
logger = logging.getLogger("feed_forwarder")


def forward(host: str, port: int, count: int, interval_s: float, meters: bool, seed: int):
    """Send count batches of simulated readings."""
    layout = create_default_layout(
        width_cm=config.FIELD_CONFIG["width_cm"],
        height_cm=config.FIELD_CONFIG["height_cm"],
    )
    sim = ReadingSimulator(layout, seed=seed)

    with socket.create_connection((host, port), timeout=5.0) as sock:
        logger.info(f"Connected to {host}:{port}")
        for i in range(count):
            tag = sim.true_position()
            for reading in sim.generate(wall_clock_ms()).values():
                row = {"anchor_id": reading.anchor_id, "rssi": round(reading.rssi_dbm, 1)}
                if meters:
                    row["distance"] = reading.distance_cm / 100.0
                else:
                    row["distance_cm"] = round(reading.distance_cm, 1)
                sock.sendall(encode_message(MSG_ANCHOR_READING, row))

            # Upstream results arrive far less often than readings
            if i % 20 == 0:
                sock.sendall(encode_message(
                    MSG_LOCALIZATION_RESULT,
                    {"est_x": round(tag.x, 1), "est_y": round(tag.y, 1)},
                ))

            time.sleep(interval_s)

    logger.info(f"Sent {count} batches")


def main():
    parser = argparse.ArgumentParser(description='Send simulated readings to the live feed')
    parser.add_argument('--host', '-H', type=str, default='127.0.0.1')
    parser.add_argument('--port', '-p', type=int, default=config.FEED_CONFIG["port"])
    parser.add_argument('--count', '-n', type=int, default=100, help='number of batches')
    parser.add_argument('--interval', type=float, default=0.2, help='seconds between batches')
    parser.add_argument('--meters', action='store_true', help='send distance in meters')
    parser.add_argument('--seed', type=int, default=None)
    args = parser.parse_args()

    try:
        forward(args.host, args.port, args.count, args.interval, args.meters, args.seed)
    except OSError as e:
        logger.error(f"Forwarding failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
