"""
Test doubles for engine module tests.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence

from web_relocator.interfaces.tree import IFrame, IStabilityWaiter, ITreeProvider, Layout
from web_relocator.utils.clock import Clock


# =============================================================================
# MOCK TREE PROVIDERS
# =============================================================================

class StaticFrameProvider(ITreeProvider):
    """
    Provider over prebuilt frames.

    ``failing`` holds the indices whose ``open_frame`` raises ``error``.
    """

    def __init__(
        self,
        frames: Sequence[IFrame],
        failing: Sequence[int] = (),
        error: Optional[Exception] = None,
    ):
        self.frames = list(frames)
        self.failing = set(failing)
        self.error = error
        self.enumerations = 0

    async def frame_handles(self) -> Sequence[Any]:
        self.enumerations += 1
        return list(range(len(self.frames)))

    async def open_frame(self, handle: Any, index: int) -> IFrame:
        if handle in self.failing:
            raise self.error or RuntimeError("frame unavailable")
        return self.frames[handle]


class ExplodingFrame(IFrame):
    """Frame whose every query raises an unexpected error."""

    def __init__(self, error: Exception):
        self.error = error

    @property
    def root(self) -> Any:
        raise self.error

    @property
    def href(self) -> str:
        return "https://broken.test/"

    def query_by_id(self, value: str) -> List[Any]:
        raise self.error

    def query_by_css(self, selector: str) -> List[Any]:
        raise self.error

    def query_by_role(self, role: str, name: Optional[str] = None) -> List[Any]:
        raise self.error

    def query_by_text(self, text: str, tag: Optional[str] = None) -> List[Any]:
        raise self.error

    def query_by_xpath(self, expression: str) -> List[Any]:
        raise self.error

    def layout(self, node: Any) -> Layout:
        raise self.error


# =============================================================================
# MOCK STABILITY WAITERS
# =============================================================================

class SleepingWaiter(IStabilityWaiter):
    """Stability waiter that always consumes its full budget on a clock."""

    def __init__(self, clock: Clock):
        self.clock = clock
        self.budgets: List[float] = []

    async def await_stable(self, budget_ms: float) -> None:
        self.budgets.append(budget_ms)
        await self.clock.sleep(budget_ms)


class CallbackWaiter(IStabilityWaiter):
    """Stability waiter that runs a callback instead of waiting."""

    def __init__(self, callback: Callable[[float], None]):
        self.callback = callback
        self.calls = 0

    async def await_stable(self, budget_ms: float) -> None:
        self.calls += 1
        self.callback(budget_ms)


def constant_scorer(value: float) -> Callable[..., float]:
    """Scorer returning ``value`` for every node."""
    def scorer(node: Any, target: Any, frame: Any = None) -> float:
        return value
    return scorer
