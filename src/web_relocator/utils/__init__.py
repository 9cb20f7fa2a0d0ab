"""
Utilities module - Common utility functions.
"""

from web_relocator.utils.logging import JsonFormatter, setup_logging
from web_relocator.utils.clock import Clock, SystemClock, ManualClock
from web_relocator.utils.retry import RetryConfig, Budget, backoff

__all__ = [
    "setup_logging",
    "JsonFormatter",
    "Clock",
    "SystemClock",
    "ManualClock",
    "RetryConfig",
    "Budget",
    "backoff",
]
