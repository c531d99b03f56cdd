"""
Anchor Layout: field dimensions and fixed anchor positions.

The system assumes four anchors at the corners of a width x height
rectangle, in the field frame (cm):

    4 (0,H) ---------- 3 (W,H)
       |                  |
       |                  |
    1 (0,0) ---------- 2 (W,0)
"""

from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple

from uwb_field.proto.position_estimate import Coordinate


ANCHOR_IDS: Tuple[str, ...] = ("1", "2", "3", "4")


@dataclass(frozen=True)
class FieldDimensions:
    """Size of the tracking field in centimeters."""

    width_cm: float
    height_cm: float

    def __post_init__(self):
        if self.width_cm <= 0 or self.height_cm <= 0:
            raise ValueError(
                f"Field dimensions must be positive: {self.width_cm} x {self.height_cm}"
            )

    def clamp(self, x: float, y: float) -> Coordinate:
        """Clamp a point to [0, width] x [0, height]."""
        return Coordinate(
            x=max(0.0, min(self.width_cm, x)),
            y=max(0.0, min(self.height_cm, y)),
        )

    def contains(self, point: Coordinate) -> bool:
        return 0 <= point.x <= self.width_cm and 0 <= point.y <= self.height_cm


@dataclass(frozen=True)
class AnchorConfig:
    """
    Static description of one anchor.

    Attributes:
        anchor_id: Anchor identifier ("1".."4")
        label: Human-readable label
        position: Fixed position in the field frame (cm)
        color: Display color (hex)
    """

    anchor_id: str
    label: str
    position: Coordinate
    color: str


class AnchorLayout:
    """
    Immutable set of anchors plus the field they bound.

    Usage:
        layout = create_default_layout()
        pos = layout.get_position("3")   # Coordinate(40, 40)
    """

    def __init__(self, field: FieldDimensions, anchors: Tuple[AnchorConfig, ...]):
        ids = [a.anchor_id for a in anchors]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate anchor IDs in layout: {ids}")
        self._field = field
        self._anchors: Dict[str, AnchorConfig] = {a.anchor_id: a for a in anchors}

    @property
    def field(self) -> FieldDimensions:
        return self._field

    @property
    def anchor_ids(self) -> Tuple[str, ...]:
        return tuple(self._anchors.keys())

    def __iter__(self) -> Iterator[AnchorConfig]:
        return iter(self._anchors.values())

    def __len__(self) -> int:
        return len(self._anchors)

    def __contains__(self, anchor_id: str) -> bool:
        return anchor_id in self._anchors

    def get(self, anchor_id: str) -> Optional[AnchorConfig]:
        return self._anchors.get(anchor_id)

    def get_position(self, anchor_id: str) -> Coordinate:
        """Get the position of a specific anchor."""
        if anchor_id not in self._anchors:
            raise ValueError(f"Anchor {anchor_id} not found in layout")
        return self._anchors[anchor_id].position


def create_default_layout(width_cm: float = 40.0, height_cm: float = 40.0) -> AnchorLayout:
    """
    Create the standard four-corner layout.

    Args:
        width_cm: Field width (default 40cm)
        height_cm: Field height (default 40cm)

    Returns:
        AnchorLayout with anchors 1 (BL), 2 (BR), 3 (TR), 4 (TL)
    """
    field = FieldDimensions(width_cm=width_cm, height_cm=height_cm)
    anchors = (
        AnchorConfig("1", "Anchor 1 (BL)", Coordinate(0.0, 0.0), "#3b82f6"),
        AnchorConfig("2", "Anchor 2 (BR)", Coordinate(width_cm, 0.0), "#a855f7"),
        AnchorConfig("3", "Anchor 3 (TR)", Coordinate(width_cm, height_cm), "#f59e0b"),
        AnchorConfig("4", "Anchor 4 (TL)", Coordinate(0.0, height_cm), "#ef4444"),
    )
    return AnchorLayout(field, anchors)
