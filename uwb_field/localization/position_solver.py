"""
Tag Position Solver (rectangular 4-anchor field).

Closed-form 2D solve for the fixed four-corner layout. Each anchor pair on
a common edge gives one coordinate directly from the difference of the
squared ranges:

    x = (ra^2 - rb^2 + W^2) / (2W)      pairs (1,2) and (3,4)
    y = (ra^2 - rc^2 + H^2) / (2H)      pairs (1,3) and (2,4)

With all four anchors both estimates per axis are averaged. With exactly
three anchors only {1,2,3} is solved (x from (1,2), y from (1,3)); every
other triple yields no fix.

The result is clamped to the field, then scored by the mean absolute range
residual over every anchor with a positive reading.
"""

from typing import Mapping, Optional, Tuple
import numpy as np

from uwb_field.proto.anchor_reading import AnchorReading
from uwb_field.proto.position_estimate import Coordinate, PositionEstimate
from uwb_field.localization.anchor_layout import ANCHOR_IDS, AnchorLayout


MIN_ANCHORS = 3
FALLBACK_ANCHORS: Tuple[str, ...] = ("1", "2", "3")


class PositionSolver:
    """
    Solve tag position from the latest reading per anchor.

    The solver holds only the immutable layout; solve() is a pure
    function of its input table.

    Usage:
        solver = PositionSolver(create_default_layout())
        estimate = solver.solve(aggregator.readings)
        if estimate is not None:
            print(f"Tag at ({estimate.x:.1f}, {estimate.y:.1f}) cm "
                  f"+/- {estimate.error_cm:.1f}")
    """

    def __init__(self, layout: AnchorLayout):
        """
        Initialize solver.

        Args:
            layout: Four-corner anchor layout (must contain anchors 1..4)
        """
        missing = [aid for aid in ANCHOR_IDS if aid not in layout]
        if missing:
            raise ValueError(f"Layout is missing anchors: {missing}")
        self.layout = layout

    def solve(self, readings: Mapping[str, AnchorReading]) -> Optional[PositionEstimate]:
        """
        Estimate tag position from the reading table.

        Args:
            readings: anchor_id -> latest AnchorReading

        Returns:
            PositionEstimate, or None when the data is insufficient
            (fewer than 3 positive ranges, or an unsupported triple)
        """
        ranges = self._valid_ranges(readings)
        if len(ranges) < MIN_ANCHORS:
            return None

        width = self.layout.field.width_cm
        height = self.layout.field.height_cm

        if all(aid in ranges for aid in ANCHOR_IDS):
            r1, r2, r3, r4 = (ranges[aid] for aid in ANCHOR_IDS)
            x = (_axis_estimate(r1, r2, width) + _axis_estimate(r3, r4, width)) / 2.0
            y = (_axis_estimate(r1, r3, height) + _axis_estimate(r2, r4, height)) / 2.0
            used = ANCHOR_IDS
        elif set(ranges) == set(FALLBACK_ANCHORS):
            r1, r2, r3 = (ranges[aid] for aid in FALLBACK_ANCHORS)
            x = _axis_estimate(r1, r2, width)
            y = _axis_estimate(r1, r3, height)
            used = FALLBACK_ANCHORS
        else:
            return None

        position = self.layout.field.clamp(x, y)

        return PositionEstimate(
            position=position,
            error_cm=self.residual_error(position, readings),
            num_anchors_used=len(used),
            anchor_ids=used,
        )

    def residual_error(
        self,
        position: Coordinate,
        readings: Mapping[str, AnchorReading]
    ) -> float:
        """
        Mean absolute range residual (cm) at a given position.

        Every layout anchor with a positive reading contributes, not only
        the ones used in the solve. Returns 0 if none contribute.
        """
        anchor_xy = []
        measured = []
        for anchor in self.layout:
            reading = readings.get(anchor.anchor_id)
            if reading is not None and reading.is_valid:
                anchor_xy.append(anchor.position.as_tuple())
                measured.append(reading.distance_cm)

        if not measured:
            return 0.0

        anchor_xy = np.array(anchor_xy)
        computed = np.hypot(position.x - anchor_xy[:, 0], position.y - anchor_xy[:, 1])
        return float(np.mean(np.abs(computed - np.array(measured))))

    def no_fix_reason(self, readings: Mapping[str, AnchorReading]) -> str:
        """Drop reason code for a table that solve() rejects."""
        if len(self._valid_ranges(readings)) < MIN_ANCHORS:
            return 'insufficient_anchors'
        return 'unsupported_anchor_set'

    @staticmethod
    def _valid_ranges(readings: Mapping[str, AnchorReading]) -> dict:
        """Positive ranges of anchors 1..4, keyed by anchor ID."""
        ranges = {}
        for aid in ANCHOR_IDS:
            reading = readings.get(aid)
            if reading is not None and reading.is_valid:
                ranges[aid] = reading.distance_cm
        return ranges


def _axis_estimate(r_a: float, r_b: float, baseline: float) -> float:
    """Coordinate along a baseline from the ranges to its two end anchors."""
    return (r_a ** 2 - r_b ** 2 + baseline ** 2) / (2.0 * baseline)
