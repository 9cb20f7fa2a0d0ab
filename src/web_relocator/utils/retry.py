"""
Retry utilities with linear backoff.
"""

from dataclasses import dataclass
import logging

from web_relocator.utils.clock import Clock

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """
    Configuration for a budgeted retry loop.
    
    Attributes:
        retries: Extra attempts after the first one
        timeout_ms: Total wall-clock budget
        backoff_step_ms: Delay added per failed attempt
    """
    retries: int = 3
    timeout_ms: int = 8000
    backoff_step_ms: int = 200
    
    @property
    def max_attempts(self) -> int:
        return self.retries + 1
    
    def backoff_ms(self, failed_attempts: int) -> float:
        """
        Delay after the ``failed_attempts``-th failed attempt (1-based).
        
        Grows linearly: 200, 400, 600, ... with the default step.
        """
        return float(self.backoff_step_ms * failed_attempts)


class Budget:
    """
    Wall-clock budget measured against a Clock.
    
    Example:
        >>> budget = Budget(clock, 8000)
        >>> budget.remaining_ms()
        8000.0
    """
    
    def __init__(self, clock: Clock, timeout_ms: float):
        self._clock = clock
        self._timeout_ms = timeout_ms
        self._start = clock.now_ms()
    
    def elapsed_ms(self) -> float:
        return self._clock.now_ms() - self._start
    
    def remaining_ms(self) -> float:
        return self._timeout_ms - self.elapsed_ms()
    
    @property
    def exhausted(self) -> bool:
        return self.remaining_ms() <= 0


async def backoff(clock: Clock, config: RetryConfig, failed_attempts: int, budget: Budget) -> float:
    """
    Sleep before the next attempt, never past the end of the budget.
    
    Returns:
        The delay actually slept, in milliseconds
    """
    delay_ms = min(config.backoff_ms(failed_attempts), max(budget.remaining_ms(), 0))
    if delay_ms <= 0:
        return 0.0
    logger.debug(f"Backing off {delay_ms:.0f}ms after attempt {failed_attempts}")
    await clock.sleep(delay_ms)
    return delay_ms
