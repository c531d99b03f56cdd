"""
Pytest configuration and shared fixtures for the UWB field tracker tests.

Provides the default 40 x 40 cm layout, a controllable millisecond clock,
solver/aggregator fixtures and helpers to build consistent readings.
"""

import sys
import math
from pathlib import Path
from typing import Dict, Iterable, Tuple

import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from uwb_field.metrics import get_metrics
from uwb_field.proto import AnchorReading
from uwb_field.localization import (
    AnchorLayout,
    PositionSolver,
    ReadingAggregator,
    create_default_layout,
)


# =============================================================================
# Clock
# =============================================================================


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> int:
        self.now_ms += ms
        return self.now_ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Layout / Solver / Aggregator Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_metrics():
    """Start every test with zeroed global metrics."""
    get_metrics().reset()
    yield


@pytest.fixture
def layout() -> AnchorLayout:
    """
    Standard 40 x 40 cm layout.

    Anchors: 1=(0,0), 2=(40,0), 3=(40,40), 4=(0,40)
    """
    return create_default_layout(40.0, 40.0)


@pytest.fixture
def solver(layout: AnchorLayout) -> PositionSolver:
    return PositionSolver(layout)


@pytest.fixture
def aggregator(solver: PositionSolver, clock: FakeClock) -> ReadingAggregator:
    return ReadingAggregator(solver, clock=clock)


# =============================================================================
# Helper Functions
# =============================================================================


def calculate_distance_2d(
    p1: Tuple[float, float], p2: Tuple[float, float]
) -> float:
    """Euclidean distance between two 2D points."""
    return math.sqrt((p1[0] - p2[0]) ** 2 + (p1[1] - p2[1]) ** 2)


def make_reading(
    anchor_id: str,
    distance_cm: float,
    timestamp_ms: int = 0,
    rssi_dbm: float = -60.0,
) -> AnchorReading:
    return AnchorReading(
        anchor_id=anchor_id,
        distance_cm=distance_cm,
        rssi_dbm=rssi_dbm,
        timestamp_ms=timestamp_ms,
    )


def readings_for_point(
    layout: AnchorLayout,
    point: Tuple[float, float],
    anchor_ids: Iterable[str] = ("1", "2", "3", "4"),
    timestamp_ms: int = 0,
) -> Dict[str, AnchorReading]:
    """Noise-free readings from the given anchors to a tag at point."""
    readings = {}
    for aid in anchor_ids:
        anchor = layout.get_position(aid)
        readings[aid] = make_reading(
            aid,
            calculate_distance_2d(point, anchor.as_tuple()),
            timestamp_ms,
        )
    return readings


def expected_error(
    layout: AnchorLayout,
    point: Tuple[float, float],
    readings: Dict[str, AnchorReading],
) -> float:
    """Mean absolute residual at point over anchors with positive range."""
    residuals = [
        abs(calculate_distance_2d(point, layout.get_position(aid).as_tuple()) - r.distance_cm)
        for aid, r in readings.items()
        if r.distance_cm > 0 and aid in layout
    ]
    return sum(residuals) / len(residuals) if residuals else 0.0
