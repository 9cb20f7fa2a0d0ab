"""
Resolution-related exceptions.

None of these ever escape ``resolve_target``: strategy errors are swallowed
at the strategy boundary, frame access errors drop the frame from the scan,
and attempt errors are recorded in the debug trace.
"""

from web_relocator.exceptions.base import RelocatorError


class DescriptorError(RelocatorError):
    """
    Target descriptor is malformed.
    
    Raised when a serialized descriptor fails validation.
    """
    
    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message, {"errors": errors} if errors else None)
        self.errors = errors or []


class StrategyEvaluationError(RelocatorError):
    """
    A single locator query could not be evaluated.
    
    Raised by a frame's query primitive for a malformed CSS selector or
    XPath expression.
    """
    
    def __init__(self, message: str, locator_type: str, value: str):
        super().__init__(message, {"locator_type": locator_type, "value": value})
        self.locator_type = locator_type
        self.value = value


class FrameAccessError(RelocatorError):
    """
    A frame's document cannot be read (cross-origin, detached, no srcdoc).
    """
    
    def __init__(self, message: str, href: str | None = None):
        super().__init__(message, {"href": href} if href else None)
        self.href = href


class AttemptError(RelocatorError):
    """
    An unexpected error escaped a resolution attempt.
    
    Wraps the original exception so the orchestrator can record it and
    continue to the next attempt.
    """
    
    def __init__(self, attempt: int, cause: BaseException):
        super().__init__(f"Attempt {attempt} failed: {cause}", {"attempt": attempt})
        self.attempt = attempt
        self.cause = cause
