"""
Tracking session: the single owner of localization state.

Switches between the demo simulator and the live feed (never both),
feeds readings to the aggregator one at a time, and holds the
independently computed external fix and the connection status.

The session is driven cooperatively: the caller invokes step() from its
loop. All aggregator mutation happens inside step(), so no locking is
needed even though the live receiver runs socket threads.
"""

from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union
import logging

from uwb_field.proto.anchor_reading import (
    ExternalPosition,
    parse_position_event,
    parse_reading_event,
)
from uwb_field.localization.reading_aggregator import ReadingAggregator, wall_clock_ms
from uwb_field.io.feed_receiver import (
    ConnectionStatus,
    FeedMessage,
    FeedReceiver,
    MSG_ANCHOR_READING,
    MSG_LOCALIZATION_RESULT,
)
from uwb_field.io.simulator import ReadingSimulator
from uwb_field.io.csv_export import history_to_csv, write_history_csv
from uwb_field.metrics import get_metrics

logger = logging.getLogger(__name__)

DEMO_INTERVAL_S = 0.2


class SourceMode(Enum):
    """Active reading source."""

    DEMO = "demo"
    LIVE = "live"


ReceiverFactory = Callable[[Callable[[ConnectionStatus], None]], FeedReceiver]


class TrackingSession:
    """
    Drive the aggregator from exactly one reading source.

    Usage:
        session = TrackingSession(aggregator, simulator, receiver_factory)
        session.set_mode(SourceMode.DEMO)
        while running:
            session.step(time.monotonic())
            time.sleep(0.01)
        session.shutdown()
    """

    def __init__(
        self,
        aggregator: ReadingAggregator,
        simulator: ReadingSimulator,
        receiver_factory: ReceiverFactory,
        demo_interval_s: float = DEMO_INTERVAL_S,
        clock: Callable[[], int] = wall_clock_ms,
    ):
        """
        Args:
            aggregator: Owner of reading table and smoothed estimate
            simulator: Demo-mode reading generator
            receiver_factory: Builds a FeedReceiver wired to a status callback
            demo_interval_s: Cadence of simulated reading batches
            clock: Returns the current time in epoch milliseconds
        """
        self.aggregator = aggregator
        self.simulator = simulator
        self.demo_interval_s = demo_interval_s
        self.metrics = get_metrics()
        self._receiver_factory = receiver_factory
        self._clock = clock

        self.mode: Optional[SourceMode] = None
        self.connection_status = ConnectionStatus(False, None)
        self.external_position: Optional[ExternalPosition] = None

        self._receiver: Optional[FeedReceiver] = None
        self._last_demo_s: Optional[float] = None

    @property
    def receiver(self) -> Optional[FeedReceiver]:
        return self._receiver

    def set_mode(self, mode: SourceMode):
        """
        Switch reading source.

        The active source is torn down before the new one starts.
        """
        if mode == self.mode:
            return

        self._stop_active_source()
        self.mode = mode

        if mode == SourceMode.DEMO:
            self._last_demo_s = None
            self.connection_status = ConnectionStatus(False, "Simulation mode")
            logger.info("Switched to demo mode")
        else:
            receiver = self._receiver_factory(self._on_status)
            if receiver.start():
                self._receiver = receiver
                logger.info("Switched to live mode")
            else:
                logger.warning(f"Live feed unavailable: {self.connection_status.message}")

    def toggle_mode(self):
        """Flip between demo and live."""
        self.set_mode(SourceMode.LIVE if self.mode == SourceMode.DEMO else SourceMode.DEMO)

    def step(self, now_s: float) -> int:
        """
        Run one cooperative tick.

        Args:
            now_s: Monotonic time in seconds

        Returns:
            Number of readings ingested this tick
        """
        if self.mode == SourceMode.DEMO:
            return self._step_demo(now_s)
        if self.mode == SourceMode.LIVE:
            return self._step_live()
        return 0

    def _step_demo(self, now_s: float) -> int:
        if self._last_demo_s is not None and now_s - self._last_demo_s < self.demo_interval_s:
            return 0
        self._last_demo_s = now_s

        batch = self.simulator.generate(self._clock())
        for reading in batch.values():
            self.aggregator.ingest(reading)
        return len(batch)

    def _step_live(self) -> int:
        if self._receiver is None:
            return 0

        ingested = 0
        for message in self._receiver.poll():
            if self.handle_message(message):
                ingested += 1
        return ingested

    def handle_message(self, message: FeedMessage) -> bool:
        """
        Apply one feed message.

        Returns:
            True if an anchor reading was ingested
        """
        if message.kind == MSG_ANCHOR_READING:
            reading = parse_reading_event(message.payload, message.received_ms)
            if reading is None:
                self.metrics.increment_drop('parse_error')
                logger.debug(f"Reading without anchor_id: {message.payload}")
                return False
            self.aggregator.ingest(reading)
            return True

        if message.kind == MSG_LOCALIZATION_RESULT:
            position = parse_position_event(message.payload, message.received_ms)
            if position is None:
                self.metrics.increment_drop('parse_error')
                return False
            self.external_position = position
            self.metrics.increment('external_positions')
            return False

        logger.debug(f"Unhandled message kind {message.kind!r}")
        return False

    def export_csv(self) -> str:
        """Position history as timestamp,x,y CSV text."""
        return history_to_csv(self.aggregator.position_history)

    def write_csv(self, path: Union[str, Path]) -> Path:
        return write_history_csv(self.aggregator.position_history, path)

    def shutdown(self):
        """Stop the active source. Safe to call more than once."""
        self._stop_active_source()
        self.mode = None

    def _stop_active_source(self):
        if self._receiver is not None:
            self._receiver.stop()
            self._receiver = None
        self._last_demo_s = None

    def _on_status(self, status: ConnectionStatus):
        self.connection_status = status
