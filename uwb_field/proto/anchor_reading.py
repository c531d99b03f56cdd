"""
Anchor Reading Message Schema.

Defines the per-anchor range report delivered by the live feed (or the demo
simulator) and the defensive parsers that turn raw inbound rows into
AnchorReading / ExternalPosition objects.

Inbound rows come from two tables of the upstream store:
- anchor_readings: {anchor_id, distance_cm | distance (m), rssi}
- localization_results: {est_x, est_y} (independently computed fix)
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional
import math


@dataclass(frozen=True)
class AnchorReading:
    """
    Range measurement from one anchor to the tag.

    Attributes:
        anchor_id: ID of the anchor ("1".."4")
        distance_cm: Measured distance in centimeters (0 = no valid range)
        rssi_dbm: Signal strength in dBm
        timestamp_ms: Receipt time (epoch milliseconds), assigned locally

    Notes:
        - Distance must never be negative
        - timestamp_ms is never taken from the upstream payload
    """

    anchor_id: str
    distance_cm: float
    rssi_dbm: float
    timestamp_ms: int

    def __post_init__(self):
        """Validate reading after initialization."""
        if self.distance_cm < 0:
            raise ValueError(f"Distance cannot be negative: {self.distance_cm}")

    @property
    def is_valid(self) -> bool:
        """A reading contributes to a solve only with a positive distance."""
        return self.distance_cm > 0

    def age_ms(self, now_ms: int) -> int:
        """Milliseconds elapsed since this reading was received."""
        return now_ms - self.timestamp_ms

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'anchor_id': self.anchor_id,
            'distance_cm': self.distance_cm,
            'rssi_dbm': self.rssi_dbm,
            'timestamp_ms': self.timestamp_ms,
        }


@dataclass(frozen=True)
class ExternalPosition:
    """
    Tag position computed upstream, independently of the local solver.

    Shown next to the local estimate for confirmation only; it is never
    blended into the smoothed position.
    """

    x: float
    y: float
    timestamp_ms: int


def _to_number(value: Any) -> Optional[float]:
    """Coerce a payload field to a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def normalize_distance_cm(payload: Mapping[str, Any]) -> float:
    """
    Extract a distance in centimeters from an inbound row.

    Prefers `distance_cm`; falls back to `distance` in meters (x100).
    Missing, malformed or negative values normalize to 0.
    """
    if payload.get('distance_cm') is not None:
        distance = _to_number(payload.get('distance_cm'))
    elif payload.get('distance') is not None:
        meters = _to_number(payload.get('distance'))
        distance = meters * 100.0 if meters is not None else None
    else:
        distance = None

    if distance is None or distance < 0:
        return 0.0
    return distance


def parse_reading_event(
    payload: Mapping[str, Any],
    timestamp_ms: int
) -> Optional[AnchorReading]:
    """
    Build an AnchorReading from an inbound anchor_readings row.

    Args:
        payload: Raw row (dict-like)
        timestamp_ms: Receipt time to stamp on the reading

    Returns:
        AnchorReading, or None if the row names no anchor
    """
    anchor_id = payload.get('anchor_id')
    if anchor_id is None or str(anchor_id).strip() == '':
        return None

    rssi = _to_number(payload.get('rssi'))

    return AnchorReading(
        anchor_id=str(anchor_id).strip(),
        distance_cm=normalize_distance_cm(payload),
        rssi_dbm=rssi if rssi is not None else 0.0,
        timestamp_ms=timestamp_ms,
    )


def parse_position_event(
    payload: Mapping[str, Any],
    timestamp_ms: int
) -> Optional[ExternalPosition]:
    """
    Build an ExternalPosition from an inbound localization_results row.

    Accepts est_x/est_y (result table columns) or plain x/y.
    Returns None if either coordinate is missing or not numeric.
    """
    x = _to_number(payload.get('est_x', payload.get('x')))
    y = _to_number(payload.get('est_y', payload.get('y')))
    if x is None or y is None:
        return None
    return ExternalPosition(x=x, y=y, timestamp_ms=timestamp_ms)
