"""
Tests for stability waiters.
"""

import pytest

from web_relocator.engine.stability import NoopStabilityWaiter, QuietWindowStabilityWaiter
from web_relocator.utils.clock import ManualClock


class CountingProbe:
    """Probe whose value changes on the first ``changes`` calls."""

    def __init__(self, changes=0):
        self.changes = changes
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return min(self.calls, self.changes + 1)


class TestNoopStabilityWaiter:

    @pytest.mark.asyncio
    async def test_returns_immediately(self):
        assert await NoopStabilityWaiter().await_stable(1500) is None


class TestQuietWindowStabilityWaiter:
    """Test the polling waiter on a virtual clock."""

    @pytest.mark.asyncio
    async def test_quiet_tree_returns_after_window(self):
        clock = ManualClock()
        waiter = QuietWindowStabilityWaiter(CountingProbe(), clock=clock, quiet_window_ms=300)

        await waiter.await_stable(1500)

        assert clock.now_ms() == 300

    @pytest.mark.asyncio
    async def test_mutations_extend_the_wait(self):
        clock = ManualClock()
        probe = CountingProbe(changes=4)
        waiter = QuietWindowStabilityWaiter(probe, clock=clock, quiet_window_ms=300, poll_interval_ms=50)

        await waiter.await_stable(1500)

        # Last change seen at 200ms, then 300ms of quiet
        assert clock.now_ms() == 500

    @pytest.mark.asyncio
    async def test_never_exceeds_budget(self):
        clock = ManualClock()
        probe = CountingProbe(changes=10_000)
        waiter = QuietWindowStabilityWaiter(probe, clock=clock, quiet_window_ms=300)

        await waiter.await_stable(1000)

        assert clock.now_ms() == 1000

    @pytest.mark.asyncio
    async def test_zero_budget(self):
        clock = ManualClock()
        probe = CountingProbe()
        await QuietWindowStabilityWaiter(probe, clock=clock).await_stable(0)
        assert probe.calls == 0

    @pytest.mark.asyncio
    async def test_probe_failure_does_not_raise(self):
        async def broken():
            raise RuntimeError("context destroyed")

        clock = ManualClock()
        await QuietWindowStabilityWaiter(broken, clock=clock).await_stable(1500)
        assert clock.now_ms() == 0
