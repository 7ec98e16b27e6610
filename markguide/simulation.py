"""Per-tick simulation: evaluate the probe against marks and gate narration."""

from __future__ import annotations

from dataclasses import dataclass
import sys
from typing import Iterable, Optional, Tuple

from markguide.direction import classify
from markguide.geometry import base_center, is_inside_footprint, resolve_nearest
from markguide.marks import Mark
from markguide.narration import (
    NarrationRequest,
    NarrationSink,
    Observation,
    Situation,
    build_prompt,
    describe,
)
from markguide.timeline import Timeline
from markguide.trigger import TriggerGate


@dataclass(frozen=True)
class Probe:
    """Probe position and facing (degrees, 0 = +Z) for one tick."""

    position: Tuple[float, float, float]
    facing: float = 0.0


def observe(probe: Probe, candidates: Iterable[Mark]) -> Observation:
    """Classify the probe against the nearest mark whose trigger region holds it."""

    nearest = resolve_nearest(candidates, probe.position)
    if nearest is None:
        return Observation(
            situation=Situation.NONE,
            label=None,
            direction=None,
            message=describe(Situation.NONE, None, None),
        )

    base = base_center(nearest)
    offset = (
        base[0] - probe.position[0],
        base[1] - probe.position[1],
        base[2] - probe.position[2],
    )
    direction = classify(offset, probe.facing)
    inside = is_inside_footprint(probe.position, nearest)
    situation = Situation.INSIDE if inside else Situation.NEAR
    return Observation(
        situation=situation,
        label=nearest.label,
        direction=direction,
        message=describe(situation, nearest.label, direction),
        mark=nearest,
    )


class Simulation:
    """Host-agnostic simulation loop.

    The host calls :meth:`tick` once per frame with the elapsed time, the
    probe sample and the current candidate marks. Narration is handed to
    the sink fire-and-forget; the cooldown is the only rate limit.
    """

    def __init__(
        self,
        gate: Optional[TriggerGate] = None,
        sink: Optional[NarrationSink] = None,
        language_code: str = "en-US",
        timeline: Optional[Timeline] = None,
    ) -> None:
        self.gate = gate or TriggerGate()
        self.sink = sink
        self.language_code = language_code
        self._timeline = timeline
        self._active = False
        self._last_observation: Optional[Observation] = None

    @property
    def active(self) -> bool:
        return self._active

    @property
    def last_observation(self) -> Optional[Observation]:
        return self._last_observation

    def set_active(self, active: bool) -> None:
        """Mode signal. Any transition clears timers and keys."""

        if active == self._active:
            return
        self._active = active
        self.gate.reset()
        self._last_observation = None
        if self._timeline:
            self._timeline.log("mode", active=active)

    def tick(
        self,
        dt: float,
        probe: Probe,
        candidates: Iterable[Mark],
    ) -> Optional[NarrationRequest]:
        """Advance one frame; return the narration request if a trigger fired."""

        if not self._active:
            return None

        observation = observe(probe, candidates)
        previous = self._last_observation
        self._last_observation = observation
        if self._timeline and (
            previous is None
            or (previous.label, previous.situation, previous.direction)
            != (observation.label, observation.situation, observation.direction)
        ):
            self._timeline.log(
                "observe",
                label=observation.label,
                situation=observation.situation.value,
                direction=observation.direction,
            )

        if not self.gate.step(dt, observation.label, observation.situation):
            return None

        mark = observation.mark
        request = NarrationRequest(
            prompt=build_prompt(
                observation.message, observation.label, mark, self.language_code
            ),
            message=observation.message,
            label=observation.label,
            situation=observation.situation,
            direction=observation.direction,
            keyword=mark.keyword if mark else "",
            details=mark.details if mark else "",
        )
        if self._timeline:
            self._timeline.log(
                "trigger",
                label=request.label,
                situation=request.situation.value,
                cooldown=f"{self.gate.cooldown_remaining:.2f}",
            )
        self._emit(request)
        return request

    def _emit(self, request: NarrationRequest) -> None:
        if self.sink is None:
            return
        try:
            self.sink.emit(request.prompt, request.label)
        except Exception as exc:
            print(f"[Guide] Narration sink error: {exc}", file=sys.stderr)
            if self._timeline:
                self._timeline.log("sink_error", label=request.label, error=str(exc))
