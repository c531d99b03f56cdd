"""
Demo reading simulator.

Generates readings for a virtual tag moving on a figure-8 (Lissajous)
path around the field center, with uniform range noise.
"""

from typing import Dict, Optional
import math
import numpy as np

from uwb_field.proto.anchor_reading import AnchorReading
from uwb_field.localization.anchor_layout import AnchorLayout
from uwb_field.proto.position_estimate import Coordinate


class ReadingSimulator:
    """
    Synthetic range source for demo mode.

    Usage:
        sim = ReadingSimulator(layout, seed=42)
        for reading in sim.generate(now_ms).values():
            aggregator.ingest(reading)
    """

    def __init__(
        self,
        layout: AnchorLayout,
        radius_fraction: float = 0.4,
        step_rad: float = 0.05,
        noise_cm: float = 10.0,
        seed: Optional[int] = None,
    ):
        """
        Args:
            layout: Anchor layout to simulate
            radius_fraction: Path radius as a fraction of field width
            step_rad: Phase advance per generated batch
            noise_cm: Peak-to-peak uniform range noise (cm)
            seed: RNG seed (None = nondeterministic)
        """
        self.layout = layout
        self.radius_cm = radius_fraction * layout.field.width_cm
        self.step_rad = step_rad
        self.noise_cm = noise_cm
        self._rng = np.random.default_rng(seed)
        self._angle = 0.0

    def true_position(self) -> Coordinate:
        """Tag position on the path at the current phase."""
        cx = self.layout.field.width_cm / 2.0
        cy = self.layout.field.height_cm / 2.0
        return Coordinate(
            x=cx + self.radius_cm * math.cos(self._angle),
            y=cy + self.radius_cm * math.sin(2.0 * self._angle) / 2.0,
        )

    def generate(self, timestamp_ms: int) -> Dict[str, AnchorReading]:
        """
        Produce one reading per anchor and advance the path.

        Args:
            timestamp_ms: Timestamp to stamp on every reading

        Returns:
            anchor_id -> AnchorReading, in layout order
        """
        tag = self.true_position()
        self._angle += self.step_rad

        readings = {}
        for anchor in self.layout:
            true_dist = tag.distance_to(anchor.position)
            noise = (self._rng.random() - 0.5) * self.noise_cm
            readings[anchor.anchor_id] = AnchorReading(
                anchor_id=anchor.anchor_id,
                distance_cm=max(0.0, true_dist + noise),
                rssi_dbm=-40.0 - true_dist * 0.2 + self._rng.random() * 5.0,
                timestamp_ms=timestamp_ms,
            )
        return readings
