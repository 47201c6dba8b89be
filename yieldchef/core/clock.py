"""Time sources for the chef host.

The engine never reads a clock; it takes ``now`` as an argument. Hosts use one
of these to produce it.
"""

from __future__ import annotations

import time
from typing import Protocol

DAY = 86_400


class Clock(Protocol):
    def now(self) -> int:
        ...


class SystemClock:
    """Wall-clock seconds since the unix epoch."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Deterministic clock for tests and replays. Only moves forward."""

    def __init__(self, start: int = 0) -> None:
        if not isinstance(start, int) or isinstance(start, bool) or start < 0:
            raise ValueError(f"start must be a non-negative int, got {start!r}")
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if not isinstance(seconds, int) or isinstance(seconds, bool) or seconds < 0:
            raise ValueError(f"seconds must be a non-negative int, got {seconds!r}")
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> int:
        if not isinstance(timestamp, int) or isinstance(timestamp, bool):
            raise ValueError(f"timestamp must be an int, got {timestamp!r}")
        if timestamp < self._now:
            raise ValueError(f"clock cannot move backwards: {timestamp} < {self._now}")
        self._now = timestamp
        return self._now

    def __repr__(self) -> str:
        return f"ManualClock(now={self._now})"
