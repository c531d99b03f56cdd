"""
Position Estimate Output Schema.

Defines the solver output and the history points kept for trend display
and export.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class Coordinate:
    """2D point in the field frame (cm). Origin is anchor 1's corner."""

    x: float
    y: float

    def distance_to(self, other: 'Coordinate') -> float:
        """Euclidean distance to another coordinate (cm)."""
        return ((self.x - other.x) ** 2 + (self.y - other.y) ** 2) ** 0.5

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class PositionEstimate:
    """
    Tag position estimate from the rectangular-field solver.

    Attributes:
        position: Estimated position, clamped to the field (cm)
        error_cm: Mean absolute range residual over all anchors
            with a positive reading (cm)
        num_anchors_used: Number of anchors used in the position algebra
        anchor_ids: Anchor IDs used in the position algebra

    Notes:
        - error_cm is computed over every reporting anchor, which may be
          more than num_anchors_used
    """

    position: Coordinate
    error_cm: float
    num_anchors_used: int = 0
    anchor_ids: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        """Validate position estimate."""
        if self.error_cm < 0:
            raise ValueError(f"Error cannot be negative: {self.error_cm}")

        if self.num_anchors_used < 0:
            raise ValueError(f"Num anchors cannot be negative: {self.num_anchors_used}")

    @property
    def x(self) -> float:
        return self.position.x

    @property
    def y(self) -> float:
        return self.position.y

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'x': self.position.x,
            'y': self.position.y,
            'error_cm': self.error_cm,
            'num_anchors_used': self.num_anchors_used,
            'anchor_ids': list(self.anchor_ids),
        }


@dataclass(frozen=True)
class PositionHistoryPoint:
    """Raw (unsmoothed) estimate with the time it was produced."""

    x: float
    y: float
    timestamp_ms: int


@dataclass(frozen=True)
class DistanceHistoryPoint:
    """
    Snapshot of the four anchor distances at one ingest.

    An anchor that has not reported yet is None.
    """

    timestamp_ms: int
    d1: Optional[float] = None
    d2: Optional[float] = None
    d3: Optional[float] = None
    d4: Optional[float] = None

    def as_dict(self) -> dict:
        return {
            'timestamp': self.timestamp_ms,
            'd1': self.d1,
            'd2': self.d2,
            'd3': self.d3,
            'd4': self.d4,
        }
