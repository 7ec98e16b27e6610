"""Key=value event log for simulation runs."""

from __future__ import annotations

import sys
import threading
import time
from typing import Callable, Optional


class Timeline:
    def __init__(
        self,
        enabled: bool,
        path: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._enabled = enabled
        self._path = path
        self._clock = clock
        self._start = clock()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def log(self, event: str, **fields: object) -> None:
        if not self._enabled:
            return
        elapsed = self._clock() - self._start
        payload = {
            "t": f"{elapsed:.3f}",
            "event": event,
            **fields,
        }
        line = " ".join(f"{key}={value}" for key, value in payload.items())
        if self._path:
            with self._lock:
                with open(self._path, "a", encoding="utf-8") as handle:
                    handle.write(line + "\n")
        else:
            print(f"[Timeline] {line}", file=sys.stderr)
