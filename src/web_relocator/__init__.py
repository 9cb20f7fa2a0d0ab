"""
Web Relocator - Find a recorded UI element again in a live, changed page.

A recorder captures a descriptor of the element a user interacted with
(fingerprint, preferred locators, ancestor trail). Later, after reloads,
re-renders or layout drift, this package finds the equivalent element by
combining several locator strategies with a multi-signal score.

Example:
    >>> from web_relocator import resolve_target
    >>> from web_relocator.dom import DocumentTreeProvider
    >>> result = await resolve_target(DocumentTreeProvider(html), descriptor)
    >>> result.status
    <ResolutionStatus.SUCCESS: 'SUCCESS'>
"""

__version__ = "0.1.0"

# Public API exports
from web_relocator.config.settings import Settings, ResolverSettings
from web_relocator.engine.descriptor import TargetDescriptor
from web_relocator.engine.target_resolver import (
    ResolutionResult,
    ResolutionStatus,
    TargetResolver,
    resolve_target,
)

__all__ = [
    "Settings",
    "ResolverSettings",
    "TargetDescriptor",
    "TargetResolver",
    "ResolutionResult",
    "ResolutionStatus",
    "resolve_target",
    "__version__",
]
