"""Ambient time sources. Time is whole seconds."""

import threading
import time
from collections.abc import Callable

Clock = Callable[[], int]


def system_clock() -> int:
    """Current wall-clock time in whole seconds."""
    return int(time.time())


class ManualClock:
    """A clock that only moves when told to. Used by tests and journal replay."""

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ValueError("start must be >= 0")
        self._now = int(start)
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            return self._now

    def advance(self, seconds: int) -> int:
        """Move forward by `seconds` and return the new time."""
        if seconds < 0:
            raise ValueError("clock cannot move backwards")
        with self._lock:
            self._now += int(seconds)
            return self._now
