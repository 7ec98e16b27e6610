"""Editing workflow: modes and mark edits feeding the store and simulation."""

from __future__ import annotations

from enum import IntEnum
import sys
from typing import Any, Optional, Tuple

from markguide.marks import (
    DEFAULT_LABEL,
    DEFAULT_MIN_HEIGHT,
    Mark,
    MarkStore,
    mark_from_rect,
    parse_region_settings,
    parse_script,
)
from markguide.narration import NarrationRequest
from markguide.simulation import Probe, Simulation


class EditorMode(IntEnum):
    NONE = 0
    MARKING = 1
    SETTING = 2
    SCRIPTING = 3
    SIMULATION = 4


_NEXT_MODE = {
    EditorMode.NONE: EditorMode.MARKING,
    EditorMode.MARKING: EditorMode.SETTING,
    EditorMode.SETTING: EditorMode.SCRIPTING,
    EditorMode.SCRIPTING: EditorMode.SIMULATION,
    EditorMode.SIMULATION: EditorMode.NONE,
}


class Editor:
    """Owns the mode switch and applies operator edits to a mark store."""

    def __init__(
        self,
        store: Optional[MarkStore] = None,
        simulation: Optional[Simulation] = None,
        min_height: float = DEFAULT_MIN_HEIGHT,
        verbose: bool = False,
    ) -> None:
        self.store = store if store is not None else MarkStore()
        self.simulation = simulation or Simulation()
        self.min_height = min_height
        self.verbose = verbose
        self._mode = EditorMode.MARKING
        self.simulation.set_active(False)

    @property
    def mode(self) -> EditorMode:
        return self._mode

    def _set_mode(self, mode: EditorMode) -> None:
        self._mode = mode
        self.simulation.set_active(mode is EditorMode.SIMULATION)
        if self.verbose:
            print(f"[Debug] Switched to mode: {mode.name}", file=sys.stderr)

    def next_mode(self) -> EditorMode:
        self._set_mode(_NEXT_MODE[self._mode])
        return self._mode

    def change_mode(self, mode: int) -> EditorMode:
        """Switch to ``mode``; out-of-range values leave the mode unchanged."""

        try:
            target = EditorMode(mode)
        except ValueError:
            return self._mode
        self._set_mode(target)
        return self._mode

    def confirm_rect(
        self,
        label: str,
        corner_a: Tuple[float, float],
        corner_b: Tuple[float, float],
        ground_y: float = 0.0,
        height: Optional[float] = None,
    ) -> Mark:
        """Create a mark from a drawn rectangle and save it."""

        mark = mark_from_rect(
            label,
            corner_a,
            corner_b,
            ground_y=ground_y,
            height=height,
            min_height=self.min_height,
        )
        self.store.save(mark)
        return mark

    def rename(self, old: str, new: str) -> Mark:
        new_label = (new or "").strip() or DEFAULT_LABEL
        return self.store.rename(old, new_label)

    def delete(self, label: str) -> None:
        self.store.remove(label)

    def apply_settings(self, label: str, margin: Any, angle1: Any, angle2: Any) -> Optional[Mark]:
        """Apply margin/angle inputs; unknown labels are ignored."""

        if label not in self.store:
            return None
        parsed_margin, a1, a2 = parse_region_settings(margin, angle1, angle2)
        return self.store.update(label, margin=parsed_margin, angle1=a1, angle2=a2)

    def apply_script(self, label: str, keyword: Optional[str], details: Optional[str]) -> Optional[Mark]:
        if label not in self.store:
            return None
        kw, det = parse_script(keyword, details)
        return self.store.update(label, keyword=kw, details=det)

    def clear(self) -> None:
        self.store.clear()

    def update(self, dt: float, probe: Probe) -> Optional[NarrationRequest]:
        """Host frame callback; only ticks the simulation in SIMULATION mode."""

        if self._mode is not EditorMode.SIMULATION:
            return None
        return self.simulation.tick(dt, probe, self.store.snapshot())
