"""
DOM Stability - Best-effort waits for the node tree to settle.

Resolving against a tree that is mid-transition (navigation, animation,
framework re-render) produces stale candidates. These waiters return once
mutations have been quiet for a short window, or when the budget runs out,
whichever comes first. They never raise.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from web_relocator.interfaces.tree import IStabilityWaiter
from web_relocator.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


DEFAULT_QUIET_WINDOW_MS = 300
DEFAULT_POLL_INTERVAL_MS = 50


class NoopStabilityWaiter(IStabilityWaiter):
    """For trees that cannot change, such as parsed static documents."""

    async def await_stable(self, budget_ms: float) -> None:
        return None


class QuietWindowStabilityWaiter(IStabilityWaiter):
    """
    Poll a mutation probe until its value stops changing.
    
    The probe is any coroutine returning a comparable value that changes
    whenever the tree mutates (a mutation counter, a node count, a content
    hash).
    
    Usage:
        waiter = QuietWindowStabilityWaiter(probe=lambda: page.evaluate("document.body.innerHTML.length"))
        await waiter.await_stable(1500)
    """

    def __init__(
        self,
        probe: Callable[[], Awaitable[Any]],
        clock: Optional[Clock] = None,
        quiet_window_ms: float = DEFAULT_QUIET_WINDOW_MS,
        poll_interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
    ):
        self._probe = probe
        self._clock = clock or SystemClock()
        self._quiet_window_ms = quiet_window_ms
        self._poll_interval_ms = poll_interval_ms

    async def await_stable(self, budget_ms: float) -> None:
        if budget_ms <= 0:
            return
        start = self._clock.now_ms()
        try:
            last = await self._probe()
        except Exception as e:
            logger.debug(f"Stability probe failed: {e}")
            return
        quiet_since = start

        while True:
            now = self._clock.now_ms()
            elapsed = now - start
            if now - quiet_since >= self._quiet_window_ms:
                logger.debug(f"Tree stable after {elapsed:.0f}ms")
                return
            if elapsed >= budget_ms:
                logger.debug(f"Tree still mutating after {budget_ms:.0f}ms budget")
                return

            await self._clock.sleep(min(self._poll_interval_ms, budget_ms - elapsed))
            try:
                current = await self._probe()
            except Exception as e:
                logger.debug(f"Stability probe failed: {e}")
                return
            if current != last:
                last = current
                quiet_since = self._clock.now_ms()
