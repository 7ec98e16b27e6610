"""Region evaluation: footprint containment, trigger regions, nearest mark."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from markguide.marks import Mark, Vec3

RECT_EPSILON = 1e-6
ANGLE_EPSILON = 1e-6
FULL_CIRCLE_EPSILON = 1e-3
ZERO_LENGTH_SQ = 1e-6
# Accumulated per-tick dt drifts by a few ulps; timer thresholds allow for it.
TIME_EPSILON = 1e-9
OUTLINE_RAY_PADDING = 0.2


@dataclass(frozen=True)
class RegionOutline:
    """Ground-plane outline of a mark's trigger region."""

    corners: Tuple[Vec3, Vec3, Vec3, Vec3]
    ray1: Tuple[Vec3, Vec3]
    ray2: Tuple[Vec3, Vec3]


def _vec(value: Sequence[float]) -> np.ndarray:
    return np.asarray(value, dtype=np.float64)


def _is_well_formed(mark: Mark) -> bool:
    scale = _vec(mark.scale)
    return bool(np.all(np.isfinite(scale)) and np.all(scale > 0.0))


def base_center(mark: Mark) -> np.ndarray:
    """Ground-contact point below the mark's vertical midpoint."""

    center = _vec(mark.position).copy()
    center[1] -= mark.scale[1] * 0.5
    return center


def horizontal_offset(point: Sequence[float], mark: Mark) -> np.ndarray:
    """Return ``(dx, dz)`` from the mark's base centre to ``point``."""

    base = base_center(mark)
    p = _vec(point)
    return np.array([p[0] - base[0], p[2] - base[2]])


def forward_vector(yaw: float) -> np.ndarray:
    """Horizontal ``(x, z)`` unit vector for a yaw in degrees (0 = +Z)."""

    rad = np.radians(yaw)
    return np.array([np.sin(rad), np.cos(rad)])


def bearing(dx: float, dz: float) -> float:
    """Absolute bearing in degrees, 0 along +Z and clockwise seen from above."""

    return float(np.degrees(np.arctan2(dx, dz)))


def wrap_signed(angle: float) -> float:
    """Wrap an angle into (-180, 180]."""

    wrapped = (angle + 180.0) % 360.0 - 180.0
    if wrapped == -180.0:
        return 180.0
    return wrapped


def signed_angle(forward: np.ndarray, target: np.ndarray) -> float:
    """Signed angle from ``forward`` to ``target`` (both horizontal), clockwise positive."""

    return wrap_signed(bearing(target[0], target[1]) - bearing(forward[0], forward[1]))


def is_inside_footprint(point: Sequence[float], mark: Mark) -> bool:
    """Strict footprint test, ignoring margin and angle."""

    if not _is_well_formed(mark):
        return False
    offset = horizontal_offset(point, mark)
    if not np.all(np.isfinite(offset)):
        return False
    half_x = mark.scale[0] * 0.5
    half_z = mark.scale[2] * 0.5
    return bool(
        abs(offset[0]) <= half_x + RECT_EPSILON
        and abs(offset[1]) <= half_z + RECT_EPSILON
    )


def sector_bounds(mark: Mark) -> Tuple[float, float]:
    a1, a2 = mark.angle1, mark.angle2
    if a1 > a2:
        a1, a2 = a2, a1
    return a1, a2


def _in_margin_rect(offset: np.ndarray, mark: Mark) -> bool:
    # Rectangle axes are world X/Z; the mark's yaw only affects the sector.
    allowed_x = mark.scale[0] * 0.5 + mark.margin
    allowed_z = mark.scale[2] * 0.5 + mark.margin
    return bool(
        abs(offset[0]) <= allowed_x + RECT_EPSILON
        and abs(offset[1]) <= allowed_z + RECT_EPSILON
    )


def _in_sector(offset: np.ndarray, mark: Mark) -> bool:
    if float(np.dot(offset, offset)) < ZERO_LENGTH_SQ:
        return True
    a1, a2 = sector_bounds(mark)
    if a2 - a1 >= 360.0 - FULL_CIRCLE_EPSILON:
        return True
    angle = signed_angle(forward_vector(mark.yaw), offset)
    return a1 - ANGLE_EPSILON <= angle <= a2 + ANGLE_EPSILON


def is_in_trigger_region(point: Sequence[float], mark: Mark) -> bool:
    """Margin-expanded rectangle test followed by the angular sector test."""

    if not _is_well_formed(mark):
        return False
    offset = horizontal_offset(point, mark)
    if not np.all(np.isfinite(offset)):
        return False
    if not _in_margin_rect(offset, mark):
        return False
    return _in_sector(offset, mark)


def horizontal_distance_sq(point: Sequence[float], mark: Mark) -> float:
    offset = horizontal_offset(point, mark)
    return float(np.dot(offset, offset))


def resolve_nearest(candidates: Iterable[Mark], point: Sequence[float]) -> Optional[Mark]:
    """Closest mark whose trigger region contains ``point``.

    Ties keep the earliest candidate in iteration order.
    """

    matches: List[Mark] = [m for m in candidates if is_in_trigger_region(point, m)]
    if not matches:
        return None
    distances = np.array([horizontal_distance_sq(point, m) for m in matches])
    # argmin returns the first index among equal minima.
    return matches[int(np.argmin(distances))]


def trigger_outline(mark: Mark) -> RegionOutline:
    """Margin rectangle corners and the two sector rays on the base plane."""

    base = base_center(mark)
    hx = mark.scale[0] * 0.5 + mark.margin
    hz = mark.scale[2] * 0.5 + mark.margin
    bx, by, bz = (float(v) for v in base)

    corners = (
        (bx - hx, by, bz - hz),
        (bx + hx, by, bz - hz),
        (bx + hx, by, bz + hz),
        (bx - hx, by, bz + hz),
    )

    length = max(hx, hz) + OUTLINE_RAY_PADDING
    a1, a2 = mark.angle1, mark.angle2

    def _ray(angle: float) -> Tuple[Vec3, Vec3]:
        direction = forward_vector(mark.yaw + angle) * length
        end = (bx + float(direction[0]), by, bz + float(direction[1]))
        return (bx, by, bz), end

    return RegionOutline(corners=corners, ray1=_ray(a1), ray2=_ray(a2))
