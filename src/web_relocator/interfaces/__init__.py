"""
Interfaces module - Abstract base classes for all pluggable components.

This module defines the contracts that tree providers, frames and
stability waiters must implement to be usable by the resolver.
"""

from web_relocator.interfaces.tree import (
    IFrame,
    ITreeProvider,
    IStabilityWaiter,
    Layout,
    HIDDEN_LAYOUT,
)

__all__ = [
    "IFrame",
    "ITreeProvider",
    "IStabilityWaiter",
    "Layout",
    "HIDDEN_LAYOUT",
]
