"""
Browser-related exceptions.

Only raised by the live-page tooling around the engine (CLI, page
launcher); the resolver itself never sees them.
"""

from web_relocator.exceptions.base import RelocatorError


class BrowserError(RelocatorError):
    """Base exception for browser-related errors."""
    pass


class BrowserLaunchError(BrowserError):
    """
    Error launching the browser.
    
    Raised when the browser fails to start, which could be due to:
    - Missing browser binaries
    - Invalid browser options
    """
    pass


class NavigationError(BrowserError):
    """
    Error during page navigation.
    
    Raised when the page to resolve against cannot be loaded.
    """
    
    def __init__(self, message: str, url: str | None = None):
        super().__init__(message, {"url": url})
        self.url = url
