"""
Playback Session - Walk a recorded guide one step at a time.

A guide is an ordered list of steps, each carrying the descriptor of the
element the user interacted with. The session resolves the current step's
target on request and reports back; it never clicks or types itself, the
user (or the caller) performs the action on the returned element.

Messages form a closed set:
- Requests: StartPlayback, NextStep, StopPlayback
- Responses: PlaybackStarted, StepReady, StepNotFound, PlaybackFinished,
  NoActivePlayback

Usage:
    session = PlaybackSession(TargetResolver(provider))
    await session.handle(StartPlayback(guide))
    response = await session.handle(NextStep())
    if isinstance(response, StepReady):
        highlight(response.result.node, response.step.instruction)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from web_relocator.engine.descriptor import LocatorSpec, LocatorType, TargetDescriptor
from web_relocator.engine.target_resolver import ResolutionResult, TargetResolver
from web_relocator.engine.trace import DebugEntry
from web_relocator.exceptions import DescriptorError

logger = logging.getLogger(__name__)


# Trust given to a bare CSS selector recorded without a descriptor
SELECTOR_CONFIDENCE = 0.9


# =============================================================================
# GUIDE MODEL
# =============================================================================

class GuideStep(BaseModel):
    """
    One recorded step.

    Attributes:
        instruction: What the user should do, as they described it
        action: ``click`` or ``type``
        value: Text typed during recording, for ``type`` steps
        selector: CSS selector captured at record time (legacy recordings)
        target: Full target descriptor
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    instruction: str = "Step recorded"
    action: str = "click"
    value: Optional[str] = None
    selector: Optional[str] = None
    target: Optional[TargetDescriptor] = None

    def descriptor(self) -> TargetDescriptor:
        """The step's descriptor, synthesized from ``selector`` if absent."""
        if self.target is not None:
            return self.target
        locators = []
        if self.selector:
            locators.append(LocatorSpec(
                type=LocatorType.CSS, value=self.selector, confidence=SELECTOR_CONFIDENCE,
            ))
        return TargetDescriptor(preferred_locators=locators)


class Guide(BaseModel):
    """An ordered, named list of steps."""
    model_config = ConfigDict(frozen=True)

    title: str = "Untitled guide"
    steps: List[GuideStep] = Field(default_factory=list)

    @classmethod
    def parse(cls, data: Union["Guide", Mapping[str, Any]]) -> "Guide":
        """
        Validate a recorded guide.

        Raises:
            DescriptorError: If the guide or one of its step targets is malformed
        """
        if isinstance(data, cls):
            return data
        if not isinstance(data, Mapping):
            raise DescriptorError(f"Guide must be a mapping, got {type(data).__name__}")
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            raise DescriptorError("Invalid guide", e.errors()) from e


# =============================================================================
# MESSAGES
# =============================================================================

@dataclass(frozen=True)
class StartPlayback:
    guide: Guide


@dataclass(frozen=True)
class NextStep:
    pass


@dataclass(frozen=True)
class StopPlayback:
    pass


@dataclass(frozen=True)
class PlaybackStarted:
    title: str
    total_steps: int


@dataclass(frozen=True)
class StepReady:
    """The current step's element was found; the index has advanced."""
    step_index: int
    step: GuideStep
    result: ResolutionResult


@dataclass(frozen=True)
class StepNotFound:
    """The current step's element was not found; retry with NextStep."""
    step_index: int
    step: GuideStep
    error: Optional[str]
    debug: List[DebugEntry] = field(default_factory=list)


@dataclass(frozen=True)
class PlaybackFinished:
    steps_completed: int


@dataclass(frozen=True)
class NoActivePlayback:
    pass


PlaybackRequest = Union[StartPlayback, NextStep, StopPlayback]
PlaybackResponse = Union[
    PlaybackStarted, StepReady, StepNotFound, PlaybackFinished, NoActivePlayback
]


# =============================================================================
# SESSION
# =============================================================================

class PlaybackSession:
    """
    Playback state for one guide at a time.

    Starting a new guide replaces the current one. Only a found step
    advances the index, so a failed step can be retried after the page
    changes.
    """

    def __init__(self, resolver: TargetResolver):
        self._resolver = resolver
        self._guide: Optional[Guide] = None
        self._index = 0

    @property
    def is_active(self) -> bool:
        return self._guide is not None

    @property
    def current_index(self) -> int:
        return self._index

    async def handle(self, request: PlaybackRequest) -> PlaybackResponse:
        """Dispatch a request message to its handler."""
        if isinstance(request, StartPlayback):
            return self.start(request.guide)
        if isinstance(request, NextStep):
            return await self.next_step()
        if isinstance(request, StopPlayback):
            return self.stop()
        raise TypeError(f"Unknown playback request: {type(request).__name__}")

    def start(self, guide: Union[Guide, Mapping[str, Any]]) -> PlaybackStarted:
        guide = Guide.parse(guide)
        self._guide = guide
        self._index = 0
        logger.info(f"Playback started: '{guide.title}' ({len(guide.steps)} steps)")
        return PlaybackStarted(title=guide.title, total_steps=len(guide.steps))

    def stop(self) -> PlaybackResponse:
        if self._guide is None:
            return NoActivePlayback()
        completed = self._index
        self._guide = None
        self._index = 0
        logger.info(f"Playback finished after {completed} step(s)")
        return PlaybackFinished(steps_completed=completed)

    async def next_step(self) -> PlaybackResponse:
        """Resolve the current step, or finish when no steps remain."""
        if self._guide is None:
            return NoActivePlayback()
        if self._index >= len(self._guide.steps):
            return self.stop()

        index = self._index
        step = self._guide.steps[index]
        result = await self._resolver.resolve(step.descriptor())

        if not result.is_resolved:
            logger.info(f"Step {index + 1} not found: {result.error}")
            return StepNotFound(
                step_index=index, step=step, error=result.error, debug=list(result.debug),
            )

        self._index += 1
        return StepReady(step_index=index, step=step, result=result)

    def skip(self) -> None:
        """Move past the current step without resolving it."""
        if self._guide is not None and self._index < len(self._guide.steps):
            self._index += 1

    def progress(self) -> Dict[str, Any]:
        """Current position, for display."""
        total = len(self._guide.steps) if self._guide else 0
        return {"active": self.is_active, "step_index": self._index, "total_steps": total}
