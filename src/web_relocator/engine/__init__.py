"""
Engine Module - Target resolution core.

This is the heart of the library, handling:
- Descriptor models and fingerprint helpers
- The five locator strategies
- Candidate scoring
- Frame scanning and stability waits
- The budgeted retry orchestrator
- Guide playback on top of the resolver
"""

from web_relocator.engine.descriptor import (
    AncestorStep,
    Fingerprint,
    FrameRef,
    LocatorSpec,
    LocatorType,
    TargetContext,
    TargetDescriptor,
)
from web_relocator.engine.trace import DebugEntry, DebugTrace
from web_relocator.engine.scorer import explain_score, score_candidate
from web_relocator.engine.frame_scanner import FrameScanner
from web_relocator.engine.stability import NoopStabilityWaiter, QuietWindowStabilityWaiter
from web_relocator.engine.target_resolver import (
    AttemptState,
    Candidate,
    ResolutionResult,
    ResolutionStatus,
    TargetResolver,
    resolve_target,
)
from web_relocator.engine.playback import Guide, GuideStep, PlaybackSession

__all__ = [
    # Descriptor
    "TargetDescriptor",
    "Fingerprint",
    "LocatorSpec",
    "LocatorType",
    "AncestorStep",
    "TargetContext",
    "FrameRef",
    # Trace
    "DebugEntry",
    "DebugTrace",
    # Scoring
    "score_candidate",
    "explain_score",
    # Frames and stability
    "FrameScanner",
    "NoopStabilityWaiter",
    "QuietWindowStabilityWaiter",
    # Resolution
    "TargetResolver",
    "resolve_target",
    "ResolutionResult",
    "ResolutionStatus",
    "AttemptState",
    "Candidate",
    # Playback
    "Guide",
    "GuideStep",
    "PlaybackSession",
]
