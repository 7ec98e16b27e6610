"""Mark records and the in-memory mark store."""

from __future__ import annotations

from dataclasses import dataclass, replace
import math
import threading
from typing import Any, Dict, Iterator, List, Optional, Tuple

Vec3 = Tuple[float, float, float]

DEFAULT_LABEL = "Label"
DEFAULT_MARGIN = 1.0
DEFAULT_ANGLE1 = -30.0
DEFAULT_ANGLE2 = 30.0
DEFAULT_MIN_HEIGHT = 0.1
MIN_RECT_MARGIN = 0.5


class LabelConflictError(ValueError):
    """Raised when a rename targets a label that is already taken."""

    def __init__(self, label: str) -> None:
        super().__init__(
            f"A mark with the name '{label}' already exists. "
            "Please choose a different name."
        )
        self.label = label


@dataclass(frozen=True)
class Mark:
    """A labelled rectangular region of interest."""

    label: str
    position: Vec3
    scale: Vec3
    margin: float = DEFAULT_MARGIN
    angle1: float = DEFAULT_ANGLE1
    angle2: float = DEFAULT_ANGLE2
    keyword: str = ""
    details: str = ""
    yaw: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "position", _as_vec3(self.position))
        object.__setattr__(self, "scale", _as_vec3(self.scale))
        margin = float(self.margin)
        # Negative margins are clamped; NaN falls through and never matches.
        object.__setattr__(self, "margin", 0.0 if margin < 0 else margin)
        object.__setattr__(self, "angle1", float(self.angle1))
        object.__setattr__(self, "angle2", float(self.angle2))
        object.__setattr__(self, "yaw", float(self.yaw))


def _as_vec3(value: Any) -> Vec3:
    x, y, z = value
    return (float(x), float(y), float(z))


class MarkStore:
    """Registry of marks keyed by label.

    Writers take a single lock; readers should evaluate against
    :meth:`snapshot` once per tick instead of iterating the live store.
    """

    def __init__(self) -> None:
        self._marks: Dict[str, Mark] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._marks)

    def __contains__(self, label: object) -> bool:
        return label in self._marks

    def __iter__(self) -> Iterator[Mark]:
        return iter(self.snapshot())

    def save(self, mark: Optional[Mark]) -> None:
        """Insert or overwrite a mark under its label."""

        if mark is None or not mark.label:
            return
        with self._lock:
            self._marks[mark.label] = mark

    def get(self, label: str) -> Optional[Mark]:
        return self._marks.get(label)

    def labels(self) -> List[str]:
        with self._lock:
            return list(self._marks)

    def remove(self, label: str) -> None:
        if not label:
            return
        with self._lock:
            self._marks.pop(label, None)

    def rename(self, old: str, new: str) -> Mark:
        """Move a mark to a new label, failing if the label is taken."""

        with self._lock:
            mark = self._marks.get(old)
            if mark is None:
                raise KeyError(old)
            if new == old:
                return mark
            if new in self._marks:
                raise LabelConflictError(new)
            renamed = replace(mark, label=new)
            del self._marks[old]
            self._marks[new] = renamed
            return renamed

    def update(self, label: str, **changes: Any) -> Mark:
        """Replace fields of an existing mark and store the result."""

        if "label" in changes:
            raise ValueError("Use rename() to change a mark's label.")
        with self._lock:
            mark = self._marks.get(label)
            if mark is None:
                raise KeyError(label)
            updated = replace(mark, **changes)
            self._marks[label] = updated
            return updated

    def clear(self) -> None:
        with self._lock:
            self._marks.clear()

    def snapshot(self) -> List[Mark]:
        """Return the marks in insertion order as an immutable view."""

        with self._lock:
            return list(self._marks.values())


def mark_from_rect(
    label: str,
    corner_a: Tuple[float, float],
    corner_b: Tuple[float, float],
    ground_y: float = 0.0,
    height: Optional[float] = None,
    min_height: float = DEFAULT_MIN_HEIGHT,
) -> Mark:
    """Build a mark from two opposite ground corners ``(x, z)`` of a drawn rectangle."""

    name = (label or "").strip() or DEFAULT_LABEL
    ax, az = float(corner_a[0]), float(corner_a[1])
    bx, bz = float(corner_b[0]), float(corner_b[1])
    width = abs(bx - ax)
    depth = abs(bz - az)
    column = max(min_height, height if height is not None else min_height)
    center_x = (ax + bx) * 0.5
    center_z = (az + bz) * 0.5
    return Mark(
        label=name,
        position=(center_x, ground_y + column * 0.5, center_z),
        scale=(width, column, depth),
        margin=max(MIN_RECT_MARGIN, max(width, depth) * 0.5),
        angle1=DEFAULT_ANGLE1,
        angle2=DEFAULT_ANGLE2,
    )


def _read_float(value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        parsed = float(str(value).strip())
    except ValueError:
        return default
    if not math.isfinite(parsed):
        return default
    return parsed


def parse_region_settings(
    margin: Any, angle1: Any, angle2: Any
) -> Tuple[float, float, float]:
    """Parse margin/angle inputs, falling back to defaults on bad values.

    A negative margin is clamped to zero rather than rejected.
    """

    parsed_margin = max(0.0, _read_float(margin, DEFAULT_MARGIN))
    return (
        parsed_margin,
        _read_float(angle1, DEFAULT_ANGLE1),
        _read_float(angle2, DEFAULT_ANGLE2),
    )


def parse_script(keyword: Optional[str], details: Optional[str]) -> Tuple[str, str]:
    return (keyword or "").strip(), (details or "").strip()
