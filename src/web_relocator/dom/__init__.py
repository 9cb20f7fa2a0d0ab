"""
DOM Module - Tree providers the engine resolves against.

- DocumentTreeProvider: static HTML (and srcdoc iframes) parsed with lxml
- PlaywrightTreeProvider: snapshots of every frame of a live page
"""

from web_relocator.dom.document import DocumentFrame, DocumentTreeProvider, static_layout
from web_relocator.dom.playwright_provider import (
    PlaywrightStabilityWaiter,
    PlaywrightTreeProvider,
    launch_page,
    locator_for,
)

__all__ = [
    "DocumentFrame",
    "DocumentTreeProvider",
    "static_layout",
    "PlaywrightTreeProvider",
    "PlaywrightStabilityWaiter",
    "launch_page",
    "locator_for",
]
