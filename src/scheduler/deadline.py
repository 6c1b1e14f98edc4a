# src/scheduler/deadline.py — v1
"""Wall-clock budget for one scheduling slice."""

from __future__ import annotations

import time
from collections.abc import Callable


class Deadline:
    """Budget minus safety margin, measured on a monotonic clock.

    Args:
        budget_s: Hard runtime limit of the invocation.
        margin_s: Time kept in reserve for persisting state and yielding.
        clock: Monotonic time source (injectable for tests).
    """

    def __init__(
        self,
        budget_s: float,
        margin_s: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._started = clock()
        self._limit = budget_s - margin_s

    def elapsed(self) -> float:
        return self._clock() - self._started

    def remaining(self) -> float:
        return max(0.0, self._limit - self.elapsed())

    def expired(self) -> bool:
        return self.elapsed() >= self._limit


class NeverDeadline(Deadline):
    """A deadline that never expires (one-shot CLI runs, tests)."""

    def __init__(self) -> None:
        super().__init__(budget_s=float("inf"))

    def expired(self) -> bool:
        return False
