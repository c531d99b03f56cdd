"""
Localization Module: anchor layout, position solve and smoothing.

Key classes:
- AnchorLayout: Field dimensions and the four fixed anchors
- PositionSolver: Closed-form rectangular-field solve with residual error
- ReadingAggregator: Latest-reading table, low-pass filter, histories
"""

from .anchor_layout import (
    ANCHOR_IDS,
    AnchorConfig,
    AnchorLayout,
    FieldDimensions,
    create_default_layout,
)
from .smoothing import (
    ERROR_ALPHA,
    POSITION_ALPHA,
    low_pass,
)
from .position_solver import PositionSolver
from .reading_aggregator import (
    DISTANCE_HISTORY_SIZE,
    POSITION_HISTORY_SIZE,
    ReadingAggregator,
    wall_clock_ms,
)

__all__ = [
    'ANCHOR_IDS',
    'AnchorConfig',
    'AnchorLayout',
    'FieldDimensions',
    'create_default_layout',
    'ERROR_ALPHA',
    'POSITION_ALPHA',
    'low_pass',
    'PositionSolver',
    'ReadingAggregator',
    'POSITION_HISTORY_SIZE',
    'DISTANCE_HISTORY_SIZE',
    'wall_clock_ms',
]
