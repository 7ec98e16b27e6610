"""Stability and cooldown gate that turns observations into narration triggers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from markguide.geometry import TIME_EPSILON
from markguide.narration import Situation

DEFAULT_STABLE_SEC = 3.0
DEFAULT_COOLDOWN_SEC = 10.0

TriggerKey = Tuple[Optional[str], Situation]


class GateState(Enum):
    IDLE = "idle"
    OBSERVING = "observing"
    COOLDOWN = "cooldown"


@dataclass
class GateSnapshot:
    """Read-only view of the gate used for diagnostics."""

    state: GateState
    stable_timer: float
    cooldown_timer: float
    previous: Optional[TriggerKey]
    last_fired: Optional[TriggerKey]


class TriggerGate:
    """Fire once per stable (label, situation) pair, at most once per cooldown.

    A pair must stay unchanged for ``stable_sec`` before it can fire, the
    cooldown from the previous fire must have fully elapsed, and the pair
    must differ from the last one fired. ``Situation.NONE`` is tracked for
    stability but never fires and never replaces the last fired key.
    """

    def __init__(
        self,
        stable_sec: float = DEFAULT_STABLE_SEC,
        cooldown_sec: float = DEFAULT_COOLDOWN_SEC,
    ) -> None:
        if stable_sec < 0:
            raise ValueError("stable_sec must be >= 0.")
        if cooldown_sec < 0:
            raise ValueError("cooldown_sec must be >= 0.")
        self.stable_sec = stable_sec
        self.cooldown_sec = cooldown_sec
        self.reset()

    def reset(self) -> None:
        """Return to Idle: clear both timers and both keys."""

        self._stable_timer = 0.0
        self._cooldown_timer = 0.0
        self._previous: Optional[TriggerKey] = None
        self._last_fired: Optional[TriggerKey] = None

    @property
    def state(self) -> GateState:
        if self._previous is None:
            return GateState.IDLE
        if self._cooldown_timer > TIME_EPSILON:
            return GateState.COOLDOWN
        return GateState.OBSERVING

    @property
    def stable_timer(self) -> float:
        return self._stable_timer

    @property
    def cooldown_remaining(self) -> float:
        return max(0.0, self._cooldown_timer)

    @property
    def last_fired(self) -> Optional[TriggerKey]:
        return self._last_fired

    def snapshot(self) -> GateSnapshot:
        return GateSnapshot(
            state=self.state,
            stable_timer=self._stable_timer,
            cooldown_timer=self.cooldown_remaining,
            previous=self._previous,
            last_fired=self._last_fired,
        )

    def step(self, dt: float, label: Optional[str], situation: Situation) -> bool:
        """Advance by ``dt`` seconds with the current observation; True means fire."""

        dt = max(0.0, dt)
        if self._cooldown_timer > 0.0:
            self._cooldown_timer -= dt

        key: TriggerKey = (label, situation)
        if key != self._previous:
            self._stable_timer = 0.0
            self._previous = key
            return False

        self._stable_timer += dt

        if situation is Situation.NONE or label is None:
            return False
        if self._stable_timer < self.stable_sec - TIME_EPSILON:
            return False
        if self._cooldown_timer > TIME_EPSILON:
            return False
        if key == self._last_fired:
            return False

        self._cooldown_timer = self.cooldown_sec
        self._last_fired = key
        return True
