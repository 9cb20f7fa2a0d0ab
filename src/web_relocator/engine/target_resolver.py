"""
Target Resolver - Re-locate a recorded element in a live, possibly mutated tree.

Each attempt:
1. Waits for the tree to settle (bounded by the remaining budget)
2. Scans frames, main frame first
3. Per frame, evaluates locators strongest-first and merges their nodes
   into identity-keyed candidates
4. Falls back to the ancestor trail, then to the fingerprint text
5. Accepts the best candidate of the first frame that scores >= 2.0

Failed attempts back off linearly (200ms, 400ms, ...) until the retries or
the wall-clock budget run out. Nothing is raised to the caller: every
failure ends up in the returned ResolutionResult.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Union
import asyncio
import logging

from web_relocator.config.settings import ResolverSettings
from web_relocator.engine.descriptor import LocatorSpec, LocatorType, TargetDescriptor
from web_relocator.engine.fingerprint import element_children, iter_descendants, node_text, tag_of
from web_relocator.engine.frame_scanner import FrameScanner
from web_relocator.engine.locator_strategies import run_locator
from web_relocator.engine.scorer import score_candidate
from web_relocator.engine.stability import NoopStabilityWaiter
from web_relocator.engine.trace import DebugEntry, DebugTrace
from web_relocator.exceptions import AttemptError, DescriptorError
from web_relocator.interfaces.tree import IFrame, IStabilityWaiter, ITreeProvider
from web_relocator.utils.clock import Clock, SystemClock
from web_relocator.utils.retry import Budget, RetryConfig, backoff

logger = logging.getLogger(__name__)


ANCESTOR_TRAIL_STRATEGY = "ancestorTrail"
FINGERPRINT_TEXT_STRATEGY = "fingerprint-text"
UNRESOLVED_MESSAGE = "Unable to resolve target"

Scorer = Callable[[Any, TargetDescriptor, IFrame], float]


class ResolutionStatus(str, Enum):
    """Terminal outcome of a resolve call."""
    SUCCESS = "SUCCESS"
    HARD_FAIL = "HARD_FAIL"


class AttemptState(Enum):
    """States of the attempt loop."""
    ATTEMPTING = "attempting"
    RETRY_BACKOFF = "retry_backoff"
    SUCCESS = "success"
    HARD_FAIL = "hard_fail"


@dataclass
class Candidate:
    """A node under consideration within one frame search."""
    node: Any
    score: float = 0.0
    why: List[str] = field(default_factory=list)

    def add(self, amount: float, strategy: str) -> None:
        self.score += amount
        self.why.append(strategy)


@dataclass
class FrameMatch:
    """The accepted candidate of a frame."""
    frame: IFrame
    candidate: Candidate


@dataclass
class ResolutionResult:
    """
    Outcome of resolving one descriptor.

    ``node`` and ``frame`` are references into the tree as it was during
    the call; they go stale as soon as the tree mutates.
    """
    status: ResolutionStatus
    node: Any = None
    frame: Optional[IFrame] = None
    debug: List[DebugEntry] = field(default_factory=list)
    error: Optional[str] = None
    score: Optional[float] = None
    why: List[str] = field(default_factory=list)
    attempts: int = 0
    elapsed_ms: float = 0.0

    @property
    def is_resolved(self) -> bool:
        return self.status == ResolutionStatus.SUCCESS and self.node is not None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly summary (the node is described, not serialized)."""
        element = None
        if self.is_resolved:
            element = {
                "tag": tag_of(self.node),
                "text": node_text(self.node)[:100],
                "path": self.frame.path_of(self.node) if self.frame is not None else None,
                "attributes": dict(self.node.attrib),
            }
        return {
            "status": self.status.value,
            "element": element,
            "frame": {"index": self.frame.index, "href": self.frame.href} if self.frame is not None else None,
            "score": self.score,
            "why": list(self.why),
            "attempts": self.attempts,
            "elapsed_ms": round(self.elapsed_ms, 1),
            "error": self.error,
            "debug": [entry.to_dict() for entry in self.debug],
        }


class TargetResolver:
    """
    Retry- and budget-bounded element re-location across frames.

    The resolver holds no state between calls: every ``resolve`` owns its
    candidate maps, frame list and debug trace.

    Usage:
        resolver = TargetResolver(DocumentTreeProvider(html))
        result = await resolver.resolve(descriptor, timeout_ms=4000)
        if result.is_resolved:
            print(result.frame.path_of(result.node))
    """

    def __init__(
        self,
        provider: ITreeProvider,
        waiter: Optional[IStabilityWaiter] = None,
        settings: Optional[ResolverSettings] = None,
        clock: Optional[Clock] = None,
        scorer: Optional[Scorer] = None,
    ):
        self._scanner = FrameScanner(provider)
        self._waiter = waiter or NoopStabilityWaiter()
        self._settings = settings or ResolverSettings()
        self._clock = clock or SystemClock()
        self._scorer = scorer or score_candidate

    @property
    def settings(self) -> ResolverSettings:
        return self._settings

    async def resolve(
        self,
        descriptor: Union[TargetDescriptor, Mapping[str, Any]],
        timeout_ms: Optional[int] = None,
        retries: Optional[int] = None,
    ) -> ResolutionResult:
        """
        Find the element a descriptor was recorded from.

        Args:
            descriptor: TargetDescriptor or its JSON mapping
            timeout_ms: Wall-clock budget (default from settings, 8000)
            retries: Extra attempts after the first (default from settings, 3)

        Returns:
            SUCCESS with node and frame, or HARD_FAIL with the last error
        """
        config = RetryConfig(
            retries=self._settings.retries if retries is None else max(retries, 0),
            timeout_ms=self._settings.timeout_ms if timeout_ms is None else timeout_ms,
            backoff_step_ms=self._settings.backoff_step_ms,
        )
        budget = Budget(self._clock, config.timeout_ms)
        trace = DebugTrace()

        try:
            target = TargetDescriptor.parse(descriptor)
        except DescriptorError as e:
            trace.error(e.message)
            return self._hard_fail(trace, budget, 0, e.message)

        if not target.is_searchable:
            message = "Descriptor has no locators, ancestor trail or fingerprint text"
            trace.warn(message)
            return self._hard_fail(trace, budget, 0, message)

        state = AttemptState.ATTEMPTING
        attempts = 0
        last_error: Optional[AttemptError] = None

        while state is not AttemptState.HARD_FAIL:
            if state is AttemptState.RETRY_BACKOFF:
                await backoff(self._clock, config, attempts, budget)
                state = AttemptState.ATTEMPTING
                continue

            remaining = budget.remaining_ms()
            if attempts >= config.max_attempts or remaining <= 0:
                state = AttemptState.HARD_FAIL
                continue

            attempts += 1
            try:
                match = await self._attempt(target, attempts, remaining, budget, trace)
            except Exception as e:
                last_error = AttemptError(attempts, e)
                logger.warning(last_error.message, extra={"attempt": attempts})
                trace.error(f"Attempt {attempts}: {type(e).__name__}: {e}")
                match = None

            if match is not None:
                candidate = match.candidate
                logger.info(
                    f"Resolved <{tag_of(candidate.node)}> in frame {match.frame.index} "
                    f"(score {candidate.score:.2f}, via {', '.join(candidate.why)})",
                    extra={
                        "attempt": attempts,
                        "frame": match.frame.index,
                        "score": round(candidate.score, 2),
                        "strategy": list(candidate.why),
                    },
                )
                return ResolutionResult(
                    status=ResolutionStatus.SUCCESS,
                    node=candidate.node,
                    frame=match.frame,
                    debug=list(trace.entries),
                    score=candidate.score,
                    why=list(candidate.why),
                    attempts=attempts,
                    elapsed_ms=budget.elapsed_ms(),
                )
            state = AttemptState.RETRY_BACKOFF

        error = f"{type(last_error.cause).__name__}: {last_error.cause}" if last_error else UNRESOLVED_MESSAGE
        logger.info(f"Target not resolved after {attempts} attempt(s): {error}")
        return self._hard_fail(trace, budget, attempts, error)

    async def _attempt(
        self,
        target: TargetDescriptor,
        attempt: int,
        remaining_ms: float,
        budget: Budget,
        trace: DebugTrace,
    ) -> Optional[FrameMatch]:
        """One pass over all frames. Returns the first acceptable match."""
        loop = asyncio.get_running_loop()
        # Advisory only: running synchronous work is never interrupted
        timer = loop.call_later(
            remaining_ms / 1000,
            logger.warning,
            f"Resolve attempt {attempt} exceeded its {remaining_ms:.0f}ms allowance",
        )
        try:
            await self._waiter.await_stable(min(remaining_ms, self._settings.stability_cap_ms))
            if budget.exhausted:
                trace.warn(f"Attempt {attempt}: budget exhausted before frame scan")
                return None

            frames = await self._scanner.scan()
            trace.info(f"Attempt {attempt}: scanning {len(frames)} frame(s)")
            for frame in frames:
                match = self.search_frame(frame, target, trace)
                if match is not None:
                    return match
            return None
        finally:
            timer.cancel()

    def search_frame(
        self,
        frame: IFrame,
        target: TargetDescriptor,
        trace: Optional[DebugTrace] = None,
    ) -> Optional[FrameMatch]:
        """
        Rank the candidates of one frame and accept the best if good enough.

        Returns:
            FrameMatch, or None when no candidate reaches the threshold
        """
        trace = trace if trace is not None else DebugTrace()
        candidates = self.collect_candidates(frame, target, trace)
        if not candidates:
            return None

        # sorted() is stable, so ties keep discovery order
        ranked = sorted(candidates, key=lambda c: c.score, reverse=True)
        top = ranked[0]
        logger.debug(
            f"Frame {frame.index}: {len(ranked)} candidate(s), top <{tag_of(top.node)}> "
            f"score {top.score:.2f} via {top.why}"
        )
        if top.node is None or top.score < self._settings.accept_threshold:
            trace.info(
                f"Frame {frame.index}: best score {top.score:.2f} below "
                f"{self._settings.accept_threshold}"
            )
            return None
        return FrameMatch(frame=frame, candidate=top)

    def collect_candidates(
        self,
        frame: IFrame,
        target: TargetDescriptor,
        trace: Optional[DebugTrace] = None,
    ) -> List[Candidate]:
        """
        Gather deduplicated candidates for one frame, in discovery order.

        Locators run strongest-first. When none of them finds anything the
        ancestor trail is tried, then the fingerprint text.
        """
        trace = trace if trace is not None else DebugTrace()
        candidates: List[Candidate] = []
        seen: Dict[int, Candidate] = {}
        weight = self._settings.confidence_weight

        def push(nodes: List[Any], strategy: str, confidence: float) -> None:
            for node in nodes:
                candidate = seen.get(id(node))
                if candidate is None:
                    candidate = Candidate(node=node, score=self._scorer(node, target, frame))
                    seen[id(node)] = candidate
                    candidates.append(candidate)
                candidate.add(confidence * weight, strategy)

        for spec in self.order_locators(target.preferred_locators):
            nodes = run_locator(frame, spec, trace)
            push(nodes, spec.type.value, self.effective_confidence(spec))

        if not candidates and target.ancestor_trail:
            try:
                anchor = find_ancestor_anchor(frame, target)
            except Exception as e:
                logger.warning(f"Ancestor search failed in frame {frame.index}: {e}")
                trace.warn("ancestor search failed")
                anchor = None
            if anchor is not None:
                nodes = list(iter_descendants(anchor, target.fingerprint.tag))
                push(nodes, ANCESTOR_TRAIL_STRATEGY, self._settings.ancestor_confidence)
                trace.info(f"Frame {frame.index}: ancestor trail fallback found {len(nodes)} node(s)")

        if not candidates and target.fingerprint.text:
            nodes = frame.query_by_text(target.fingerprint.text)
            push(nodes, FINGERPRINT_TEXT_STRATEGY, self._settings.text_fallback_confidence)
            trace.info(f"Frame {frame.index}: fingerprint text fallback found {len(nodes)} node(s)")

        return candidates

    def order_locators(self, locators: List[LocatorSpec]) -> List[LocatorSpec]:
        """Locators sorted strongest-first (stable for equal specificity)."""
        return sorted(locators, key=self.locator_specificity, reverse=True)

    def locator_specificity(self, spec: LocatorSpec) -> float:
        """
        Evaluation priority of a locator.

        base = confidence; +5 identity attribute; +2 test id attribute;
        +3 for ``id`` locators; +1.5 for ``text`` locators.
        """
        value = spec.value.lower()
        score = spec.confidence or 0.0
        if self._references(value, self._settings.identity_attributes):
            score += 5
        if self._references(value, self._settings.test_id_attributes):
            score += 2
        if spec.type == LocatorType.ID:
            score += 3
        elif spec.type == LocatorType.TEXT:
            score += 1.5
        return score

    def effective_confidence(self, spec: LocatorSpec) -> float:
        """Confidence used for scoring; identity attributes are trusted >= 0.95."""
        confidence = self._settings.default_confidence if spec.confidence is None else spec.confidence
        if self._references(spec.value.lower(), self._settings.identity_attributes):
            confidence = max(confidence, 0.95)
        return confidence

    @staticmethod
    def _references(value: str, attributes: List[str]) -> bool:
        return any(attribute.lower() in value for attribute in attributes)

    def _hard_fail(
        self,
        trace: DebugTrace,
        budget: Budget,
        attempts: int,
        error: str,
    ) -> ResolutionResult:
        return ResolutionResult(
            status=ResolutionStatus.HARD_FAIL,
            debug=list(trace.entries),
            error=error,
            attempts=attempts,
            elapsed_ms=budget.elapsed_ms(),
        )


def find_ancestor_anchor(frame: IFrame, target: TargetDescriptor) -> Any:
    """
    Follow the recorded trail down from ``body``.

    Each recorded index is clamped into the current node's child range, so
    layout drift still lands on a nearby subtree.

    Returns:
        The anchor element, or None if the walk hits a childless node
    """
    current = frame.body
    for step in target.ancestor_trail:
        children = element_children(current)
        if not children:
            return None
        current = children[min(step.index, len(children) - 1)]
    return current


async def resolve_target(
    provider: ITreeProvider,
    descriptor: Union[TargetDescriptor, Mapping[str, Any]],
    timeout_ms: Optional[int] = None,
    retries: Optional[int] = None,
    *,
    waiter: Optional[IStabilityWaiter] = None,
    settings: Optional[ResolverSettings] = None,
    clock: Optional[Clock] = None,
) -> ResolutionResult:
    """
    Resolve ``descriptor`` against the frames of ``provider``.

    Convenience wrapper around ``TargetResolver(...).resolve(...)``.

    Example:
        >>> result = await resolve_target(DocumentTreeProvider(html), descriptor)
        >>> result.status
        <ResolutionStatus.SUCCESS: 'SUCCESS'>
    """
    resolver = TargetResolver(provider, waiter=waiter, settings=settings, clock=clock)
    return await resolver.resolve(descriptor, timeout_ms=timeout_ms, retries=retries)
