"""
Reading Aggregator / Filter.

Keeps the latest reading per anchor, re-solves the tag position on every
ingested reading and smooths the result before it is exposed to the
presentation layer.

Per-reading cycle (one ordered step, nothing deferred):
1. Replace the table entry for the reading's anchor (last write wins)
2. Solve on the updated table
3. On a fix: smooth position (alpha 0.15) and error (alpha 0.1),
   append the raw fix to the position history (last 100)
4. Always: append a distance snapshot to the distance history (last 50)

Notes:
    - The smoothed position is initialized directly from the first fix.
    - The smoothed error starts at 0 and is low-passed toward the first
      residual like every later one. This asymmetry is intentional.
"""

from collections import deque
from typing import Callable, Dict, Optional, Tuple
import logging
import time

from uwb_field.proto.anchor_reading import AnchorReading
from uwb_field.proto.position_estimate import (
    Coordinate,
    DistanceHistoryPoint,
    PositionEstimate,
    PositionHistoryPoint,
)
from uwb_field.localization.position_solver import PositionSolver
from uwb_field.localization.smoothing import ERROR_ALPHA, POSITION_ALPHA, low_pass
from uwb_field.metrics import get_metrics

logger = logging.getLogger(__name__)

POSITION_HISTORY_SIZE = 100
DISTANCE_HISTORY_SIZE = 50
ONLINE_WINDOW_MS = 30000


def wall_clock_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class ReadingAggregator:
    """
    Owner of the reading table, smoothed estimate and histories.

    Not thread-safe: exactly one caller ingests readings, one at a time.

    Usage:
        aggregator = ReadingAggregator(PositionSolver(layout))
        aggregator.ingest(reading)

        estimate = aggregator.current_estimate()
        if estimate is not None:
            print(f"({estimate.x:.0f}, {estimate.y:.0f}) cm "
                  f"+/- {estimate.error_cm:.1f}")
    """

    def __init__(
        self,
        solver: PositionSolver,
        clock: Callable[[], int] = wall_clock_ms,
        position_history_size: int = POSITION_HISTORY_SIZE,
        distance_history_size: int = DISTANCE_HISTORY_SIZE,
    ):
        """
        Initialize aggregator.

        Args:
            solver: Position solver for the anchor layout
            clock: Returns the current time in epoch milliseconds
            position_history_size: Raw fixes kept for trend display
            distance_history_size: Distance snapshots kept for charts
        """
        self.solver = solver
        self.layout = solver.layout
        self.metrics = get_metrics()
        self._clock = clock

        self._readings: Dict[str, AnchorReading] = {}
        self._smoothed_position: Optional[Coordinate] = None
        self._smoothed_error = 0.0
        self._position_history = deque(maxlen=position_history_size)
        self._distance_history = deque(maxlen=distance_history_size)

    def ingest(self, reading: AnchorReading) -> Optional[PositionEstimate]:
        """
        Record a reading and update the estimate.

        Args:
            reading: Newly received reading

        Returns:
            The raw (unsmoothed) estimate of this cycle, or None if the
            table does not support a fix (smoothed values are then kept)
        """
        if reading.anchor_id not in self.layout:
            self.metrics.increment_drop('unknown_anchor')
            logger.debug(f"Ignoring reading from unknown anchor {reading.anchor_id!r}")
            return None

        self.metrics.increment('readings_in')
        now_ms = self._clock()

        self._readings[reading.anchor_id] = reading

        raw = self.solver.solve(self._readings)
        if raw is None:
            self.metrics.increment_drop(self.solver.no_fix_reason(self._readings))
        else:
            self._apply_estimate(raw, now_ms)

        self._distance_history.append(self._distance_snapshot(now_ms))

        return raw

    def _apply_estimate(self, raw: PositionEstimate, now_ms: int):
        """Smooth position and error, then record the raw fix."""
        if self._smoothed_position is None:
            self._smoothed_position = raw.position
        else:
            prev = self._smoothed_position
            self._smoothed_position = Coordinate(
                x=low_pass(prev.x, raw.x, POSITION_ALPHA),
                y=low_pass(prev.y, raw.y, POSITION_ALPHA),
            )

        self._smoothed_error = low_pass(self._smoothed_error, raw.error_cm, ERROR_ALPHA)

        self._position_history.append(
            PositionHistoryPoint(x=raw.x, y=raw.y, timestamp_ms=now_ms)
        )

        self.metrics.increment('position_estimates')
        self.metrics.record_histogram('position_error_cm', raw.error_cm)

    def _distance_snapshot(self, now_ms: int) -> DistanceHistoryPoint:
        def distance(aid: str) -> Optional[float]:
            reading = self._readings.get(aid)
            return reading.distance_cm if reading is not None else None

        return DistanceHistoryPoint(
            timestamp_ms=now_ms,
            d1=distance("1"),
            d2=distance("2"),
            d3=distance("3"),
            d4=distance("4"),
        )

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def smoothed_position(self) -> Optional[Coordinate]:
        """Filtered position, None until the first fix."""
        return self._smoothed_position

    @property
    def smoothed_error(self) -> float:
        """Filtered mean absolute residual (cm)."""
        return self._smoothed_error

    @property
    def readings(self) -> Dict[str, AnchorReading]:
        """Copy of the latest-reading table."""
        return dict(self._readings)

    @property
    def position_history(self) -> Tuple[PositionHistoryPoint, ...]:
        """Raw fixes, oldest first."""
        return tuple(self._position_history)

    @property
    def distance_history(self) -> Tuple[DistanceHistoryPoint, ...]:
        """Distance snapshots, oldest first."""
        return tuple(self._distance_history)

    @property
    def last_sync_ms(self) -> Optional[int]:
        """Receipt time of the newest reading in the table."""
        if not self._readings:
            return None
        return max(r.timestamp_ms for r in self._readings.values())

    def current_estimate(self) -> Optional[PositionEstimate]:
        """Smoothed position with smoothed error, or None before the first fix."""
        if self._smoothed_position is None:
            return None
        return PositionEstimate(
            position=self._smoothed_position,
            error_cm=self._smoothed_error,
        )

    def online_anchor_count(
        self,
        now_ms: Optional[int] = None,
        max_age_ms: int = ONLINE_WINDOW_MS
    ) -> int:
        """Number of anchors heard from within max_age_ms."""
        if now_ms is None:
            now_ms = self._clock()
        return sum(1 for r in self._readings.values() if r.age_ms(now_ms) < max_age_ms)

    def reset(self):
        """Forget all readings, estimates and history."""
        self._readings.clear()
        self._smoothed_position = None
        self._smoothed_error = 0.0
        self._position_history.clear()
        self._distance_history.clear()
