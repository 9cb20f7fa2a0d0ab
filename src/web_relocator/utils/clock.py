"""
Clock abstraction for time-bounded loops.

The resolver never calls ``time`` or ``asyncio.sleep`` directly; it goes
through a Clock so that budget and backoff logic can be driven
deterministically in tests.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import List


class Clock(ABC):
    """Monotonic time source plus a cooperative sleep."""

    @abstractmethod
    def now_ms(self) -> float:
        """Current monotonic time in milliseconds."""
        ...

    @abstractmethod
    async def sleep(self, ms: float) -> None:
        """Suspend the current task for ``ms`` milliseconds."""
        ...


class SystemClock(Clock):
    """Wall-clock implementation backed by ``time.monotonic``."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000

    async def sleep(self, ms: float) -> None:
        if ms > 0:
            await asyncio.sleep(ms / 1000)


class ManualClock(Clock):
    """
    Virtual clock that only advances when slept on or advanced explicitly.
    
    Every sleep is recorded in ``sleeps`` so callers can assert on the
    exact delays requested.
    
    Example:
        >>> clock = ManualClock()
        >>> await clock.sleep(200)
        >>> clock.now_ms()
        200.0
    """

    def __init__(self, start_ms: float = 0.0):
        self._now = float(start_ms)
        self.sleeps: List[float] = []

    def now_ms(self) -> float:
        return self._now

    def advance(self, ms: float) -> None:
        self._now += ms

    async def sleep(self, ms: float) -> None:
        self.sleeps.append(ms)
        self._now += max(ms, 0)
        # Still yield so other tasks get a turn
        await asyncio.sleep(0)
