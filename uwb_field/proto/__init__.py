"""
Protocol Module: Message schemas.

- Defensive parsing of inbound feed rows (no exceptions on bad payloads)
- Receipt timestamps assigned locally
- Immutable records for readings, estimates and history points
"""

from .anchor_reading import (
    AnchorReading,
    ExternalPosition,
    normalize_distance_cm,
    parse_reading_event,
    parse_position_event,
)
from .position_estimate import (
    Coordinate,
    PositionEstimate,
    PositionHistoryPoint,
    DistanceHistoryPoint,
)

__all__ = [
    'AnchorReading',
    'ExternalPosition',
    'normalize_distance_cm',
    'parse_reading_event',
    'parse_position_event',
    'Coordinate',
    'PositionEstimate',
    'PositionHistoryPoint',
    'DistanceHistoryPoint',
]
