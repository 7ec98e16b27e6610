"""Eight-way direction relative to the probe's facing."""

from __future__ import annotations

from enum import Enum
from typing import Sequence

import numpy as np

from markguide.geometry import ZERO_LENGTH_SQ, bearing


class Sector(Enum):
    FORWARD = "Forward"
    FORWARD_RIGHT = "Forward-Right"
    RIGHT = "Right"
    BACKWARD_RIGHT = "Backward-Right"
    BACKWARD = "Backward"
    BACKWARD_LEFT = "Backward-Left"
    LEFT = "Left"
    FORWARD_LEFT = "Forward-Left"
    HERE = "Here"

    def __str__(self) -> str:
        return self.value


# Clockwise from Forward, each sector centred on a multiple of 45 degrees.
_RING = (
    Sector.FORWARD,
    Sector.FORWARD_RIGHT,
    Sector.RIGHT,
    Sector.BACKWARD_RIGHT,
    Sector.BACKWARD,
    Sector.BACKWARD_LEFT,
    Sector.LEFT,
    Sector.FORWARD_LEFT,
)

SECTOR_WIDTH = 45.0
_HALF_WIDTH = SECTOR_WIDTH / 2.0


def relative_bearing(offset: Sequence[float], facing: float) -> float:
    """Bearing of a 3D offset relative to ``facing``, in [0, 360)."""

    rel = (bearing(offset[0], offset[2]) - facing) % 360.0
    # Float modulo can round a tiny negative up to exactly 360.
    return 0.0 if rel >= 360.0 else rel


def sector_for_bearing(rel: float) -> Sector:
    """Map a relative bearing in [0, 360) to its sector; bounds are half-open."""

    index = int(((rel + _HALF_WIDTH) % 360.0) // SECTOR_WIDTH)
    return _RING[index % len(_RING)]


def classify(offset: Sequence[float], facing: float) -> Sector:
    """Classify a 3D offset (target minus probe) against a facing angle in degrees."""

    horizontal = np.array([offset[0], offset[2]], dtype=np.float64)
    if not np.all(np.isfinite(horizontal)):
        return Sector.HERE
    if float(np.dot(horizontal, horizontal)) < ZERO_LENGTH_SQ:
        return Sector.HERE
    if not np.isfinite(facing):
        facing = 0.0
    return sector_for_bearing(relative_bearing(offset, facing))
