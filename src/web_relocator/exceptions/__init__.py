"""
Exceptions module - Custom exception hierarchy.

This module defines all custom exceptions used throughout Web Relocator,
providing clear error types for different failure scenarios.
"""

from web_relocator.exceptions.base import (
    RelocatorError,
    ConfigurationError,
)
from web_relocator.exceptions.resolution import (
    DescriptorError,
    StrategyEvaluationError,
    FrameAccessError,
    AttemptError,
)
from web_relocator.exceptions.browser import (
    BrowserError,
    BrowserLaunchError,
    NavigationError,
)

__all__ = [
    # Base exceptions
    "RelocatorError",
    "ConfigurationError",
    # Resolution exceptions
    "DescriptorError",
    "StrategyEvaluationError",
    "FrameAccessError",
    "AttemptError",
    # Browser exceptions
    "BrowserError",
    "BrowserLaunchError",
    "NavigationError",
]
