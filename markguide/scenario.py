"""Read-only YAML scenarios: marks plus a recorded probe path."""

from __future__ import annotations

from dataclasses import dataclass, replace
import math
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import yaml

from markguide.geometry import TIME_EPSILON
from markguide.marks import (
    DEFAULT_MIN_HEIGHT,
    Mark,
    mark_from_rect,
    parse_region_settings,
    parse_script,
)
from markguide.narration import NarrationRequest
from markguide.simulation import Probe


@dataclass(frozen=True)
class ProbeSample:
    t: float
    probe: Probe


@dataclass(frozen=True)
class Scenario:
    marks: List[Mark]
    samples: List[ProbeSample]

    @property
    def duration(self) -> float:
        if not self.samples:
            return 0.0
        return self.samples[-1].t - self.samples[0].t


def _float_list(value: Any, name: str, lengths: Tuple[int, ...]) -> List[float]:
    if not isinstance(value, (list, tuple)) or len(value) not in lengths:
        expected = " or ".join(str(n) for n in lengths)
        raise ValueError(f"{name} must be a list of {expected} numbers.")
    try:
        return [float(v) for v in value]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must contain only numbers.") from exc


def _float(value: Any, name: str) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a number.") from exc
    if not math.isfinite(parsed):
        raise ValueError(f"{name} must be finite.")
    return parsed


def _text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _parse_mark(entry: Dict[str, Any], index: int, min_height: float) -> Mark:
    if not isinstance(entry, dict):
        raise ValueError(f"marks[{index}] must be a mapping.")
    label = (_text(entry.get("label")) or "").strip()
    where = f"marks[{index}]"

    if "rect" in entry:
        x0, z0, x1, z1 = _float_list(entry["rect"], f"{where}.rect", (4,))
        height = entry.get("height")
        mark = mark_from_rect(
            label,
            (x0, z0),
            (x1, z1),
            ground_y=_float(entry.get("ground_y", 0.0), f"{where}.ground_y"),
            height=_float(height, f"{where}.height") if height is not None else None,
            min_height=min_height,
        )
    elif "position" in entry and "scale" in entry:
        position = _float_list(entry["position"], f"{where}.position", (3,))
        scale = _float_list(entry["scale"], f"{where}.scale", (3,))
        if not label:
            raise ValueError(f"{where}.label is required.")
        mark = Mark(label=label, position=tuple(position), scale=tuple(scale))
    else:
        raise ValueError(f"{where} needs either 'rect' or 'position' and 'scale'.")

    margin, a1, a2 = parse_region_settings(
        entry.get("margin", mark.margin),
        entry.get("angle1", mark.angle1),
        entry.get("angle2", mark.angle2),
    )
    keyword, details = parse_script(
        _text(entry.get("keyword")), _text(entry.get("details"))
    )
    return replace(
        mark,
        margin=margin,
        angle1=a1,
        angle2=a2,
        keyword=keyword,
        details=details,
        yaw=_float(entry.get("yaw", 0.0), f"{where}.yaw"),
    )


def _parse_sample(entry: Dict[str, Any], index: int) -> ProbeSample:
    if not isinstance(entry, dict):
        raise ValueError(f"probe[{index}] must be a mapping.")
    where = f"probe[{index}]"
    if "t" not in entry or "position" not in entry:
        raise ValueError(f"{where} needs 't' and 'position'.")
    coords = _float_list(entry["position"], f"{where}.position", (2, 3))
    if len(coords) == 2:
        position = (coords[0], 0.0, coords[1])
    else:
        position = (coords[0], coords[1], coords[2])
    return ProbeSample(
        t=_float(entry["t"], f"{where}.t"),
        probe=Probe(
            position=position,
            facing=_float(entry.get("facing", 0.0), f"{where}.facing"),
        ),
    )


def parse_scenario(data: Any, min_height: float = DEFAULT_MIN_HEIGHT) -> Scenario:
    if not isinstance(data, dict):
        raise ValueError("Scenario must be a mapping with 'marks' and 'probe'.")
    raw_marks = data.get("marks") or []
    raw_probe = data.get("probe") or []
    if not isinstance(raw_marks, list) or not isinstance(raw_probe, list):
        raise ValueError("'marks' and 'probe' must be lists.")

    marks = [_parse_mark(entry, i, min_height) for i, entry in enumerate(raw_marks)]
    seen: set[str] = set()
    for mark in marks:
        if mark.label in seen:
            raise ValueError(f"Duplicate mark label: {mark.label}")
        seen.add(mark.label)

    samples = sorted(
        (_parse_sample(entry, i) for i, entry in enumerate(raw_probe)),
        key=lambda s: s.t,
    )
    return Scenario(marks=marks, samples=samples)


def load_scenario(path: Path, min_height: float = DEFAULT_MIN_HEIGHT) -> Scenario:
    """Load a scenario file. Raises ValueError on malformed content."""

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    return parse_scenario(data, min_height=min_height)


def replay(
    scenario: Scenario,
    tick_hz: float,
    step: Callable[[float, Probe], Optional[NarrationRequest]],
) -> Iterator[Tuple[float, NarrationRequest]]:
    """Drive ``step(dt, probe)`` at ``tick_hz`` over the sampled probe path.

    Each tick uses the latest sample at or before the tick time.
    """

    if not scenario.samples or tick_hz <= 0:
        return
    interval = 1.0 / tick_hz
    start = scenario.samples[0].t
    ticks = int(scenario.duration * tick_hz + TIME_EPSILON)
    cursor = 0
    for i in range(ticks + 1):
        now = start + i * interval
        while (
            cursor + 1 < len(scenario.samples)
            and scenario.samples[cursor + 1].t <= now + TIME_EPSILON
        ):
            cursor += 1
        dt = 0.0 if i == 0 else interval
        request = step(dt, scenario.samples[cursor].probe)
        if request is not None:
            yield now - start, request
