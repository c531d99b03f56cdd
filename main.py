"""
UWB field tracker main program.

Receives anchor range readings (live feed or demo simulator), estimates
the tag position and prints the smoothed estimate and telemetry.
"""

import sys
import time
import signal
import logging
import argparse
from typing import Optional

import config
from uwb_field.localization import (
    PositionSolver,
    ReadingAggregator,
    create_default_layout,
    wall_clock_ms,
)
from uwb_field.io import FeedReceiver, ReadingSimulator
from uwb_field.domain import SourceMode, TrackingSession
from uwb_field.metrics import get_metrics

logging.basicConfig(
    level=getattr(logging, config.LOGGING_CONFIG["level"]),
    format=config.LOGGING_CONFIG["format"]
)
logger = logging.getLogger(__name__)


class FieldTrackerServer:
    """Runs one tracking session until stopped."""

    def __init__(self):
        self.running = False

        layout = create_default_layout(
            width_cm=config.FIELD_CONFIG["width_cm"],
            height_cm=config.FIELD_CONFIG["height_cm"],
        )
        self.aggregator = ReadingAggregator(PositionSolver(layout))
        simulator = ReadingSimulator(
            layout,
            radius_fraction=config.DEMO_CONFIG["radius_fraction"],
            step_rad=config.DEMO_CONFIG["step_rad"],
            noise_cm=config.DEMO_CONFIG["noise_cm"],
            seed=config.DEMO_CONFIG["seed"],
        )
        self.session = TrackingSession(
            self.aggregator,
            simulator,
            self._create_receiver,
            demo_interval_s=config.DEMO_CONFIG["interval_s"],
        )

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        logger.info("Field tracker initialized")

    @staticmethod
    def _create_receiver(status_callback) -> FeedReceiver:
        return FeedReceiver(
            host=config.FEED_CONFIG["host"],
            port=config.FEED_CONFIG["port"],
            clock=wall_clock_ms,
            status_callback=status_callback,
            max_queue_size=config.FEED_CONFIG["max_queue_size"],
        )

    def _signal_handler(self, signum, frame):
        logger.info(f"Received signal {signum}, stopping...")
        self.running = False

    def start(self, mode: SourceMode, duration_s: Optional[float] = None):
        """Start the session and run the main loop."""
        logger.info(f"Starting field tracker in {mode.value} mode")
        self.session.set_mode(mode)
        self.running = True

        try:
            self._run_loop(duration_s)
        finally:
            self.stop()

    def _run_loop(self, duration_s: Optional[float]):
        status_interval = config.OUTPUT_CONFIG["status_interval_s"]
        sleep_s = config.SESSION_CONFIG["loop_sleep_s"]
        t_start = time.monotonic()
        last_status = t_start

        while self.running:
            now = time.monotonic()
            if duration_s is not None and now - t_start >= duration_s:
                break

            self.session.step(now)

            if config.OUTPUT_CONFIG["enable_console_print"] and now - last_status >= status_interval:
                self._print_status()
                last_status = now

            time.sleep(sleep_s)

    def _print_status(self):
        estimate = self.aggregator.current_estimate()
        online = self.aggregator.online_anchor_count(
            max_age_ms=config.SESSION_CONFIG["online_window_ms"]
        )
        status = self.session.connection_status

        if self.session.mode == SourceMode.DEMO:
            source = "SIMULATION MODE"
        else:
            source = "LIVE DATA FEED" if status.connected else "DISCONNECTED"

        if estimate is not None:
            pos = f"X: {estimate.x:.0f} cm  Y: {estimate.y:.0f} cm  +/- {estimate.error_cm:.1f} cm"
        else:
            pos = "X: -- cm  Y: -- cm"

        external = self.session.external_position
        ext = f"X:{external.x:.0f} Y:{external.y:.0f}" if external else "Waiting..."

        distances = ", ".join(
            f"A{aid}={r.distance_cm:.1f}"
            for aid, r in sorted(self.aggregator.readings.items())
        )

        print(f"[{source}] {pos} | anchors {online}/4 online | server fix: {ext}")
        if distances:
            print(f"    ranges (cm): {distances}")
        if status.message and not status.connected and self.session.mode == SourceMode.LIVE:
            print(f"    connection: {status.message}")

    def stop(self):
        """Stop the session, export history and print final metrics."""
        logger.info("Stopping field tracker...")
        self.running = False

        export_path = config.OUTPUT_CONFIG["export_path"]
        if export_path:
            path = self.session.write_csv(export_path)
            logger.info(f"Position history written to {path}")

        self.session.shutdown()
        get_metrics().print_summary()
        logger.info("Field tracker stopped")


def main():
    """Entry point."""
    parser = argparse.ArgumentParser(description='UWB field tag tracker')
    parser.add_argument('--mode', '-m', choices=['live', 'demo'], default=None,
                        help='reading source')
    parser.add_argument('--host', '-H', type=str, default=None,
                        help='feed listen address')
    parser.add_argument('--port', '-p', type=int, default=None,
                        help='feed listen port')
    parser.add_argument('--duration', type=float, default=None,
                        help='stop after this many seconds')
    parser.add_argument('--export', type=str, default=None,
                        help='write position history CSV to this path on exit')
    parser.add_argument('--seed', type=int, default=None,
                        help='demo simulator RNG seed')
    parser.add_argument('--debug', '-d', action='store_true',
                        help='enable debug logging')

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.host:
        config.FEED_CONFIG["host"] = args.host
    if args.port:
        config.FEED_CONFIG["port"] = args.port
    if args.export:
        config.OUTPUT_CONFIG["export_path"] = args.export
    if args.seed is not None:
        config.DEMO_CONFIG["seed"] = args.seed

    mode = SourceMode(args.mode or config.SESSION_CONFIG["start_mode"])

    server = FieldTrackerServer()
    server.start(mode, duration_s=args.duration)
    return 0


if __name__ == "__main__":
    sys.exit(main())
