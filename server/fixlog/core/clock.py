"""Injectable wall clock in UTC epoch seconds."""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> int: ...


class SystemClock:
    def now(self) -> int:
        return int(time.time())


class FixedClock:
    """Clock pinned to a given instant; tests move it with ``advance``."""

    def __init__(self, ts: int) -> None:
        self._ts = ts

    def now(self) -> int:
        return self._ts

    def advance(self, seconds: int) -> None:
        self._ts += seconds
