"""
Retry controller for Graph API calls.

Only throttling failures are retried, with exponential backoff capped at
max_delay. Anything else propagates on the first occurrence. After a
successful call a short cooldown keeps back-to-back calls from draining the
rate limiter window.
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, TypeVar

from adlens.core.exceptions import MaxRetriesExceeded, is_rate_limit_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 30.0
DEFAULT_SUCCESS_COOLDOWN = 0.5


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay after the given zero-based failed attempt."""
    return min(base_delay * (2 ** attempt), max_delay)


class RetryController:
    """Executes async operations with rate-limit aware retries."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        success_cooldown: float = DEFAULT_SUCCESS_COOLDOWN,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.success_cooldown = success_cooldown
        self._sleep = sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        name: Optional[str] = None,
    ) -> T:
        """
        Run `operation` until it succeeds or attempts run out.

        Args:
            operation: Zero-argument coroutine factory (called once per attempt)
            max_attempts: Total attempts including the first one
            base_delay: Delay after the first failure, doubled each time
            max_delay: Upper bound for a single delay
            name: Label used in log lines

        Returns:
            The operation's result

        Raises:
            MaxRetriesExceeded: Still rate limited after the last attempt
            Exception: Any non rate-limit failure, unchanged
        """
        attempts = max_attempts or self.max_attempts
        base = self.base_delay if base_delay is None else base_delay
        cap = self.max_delay if max_delay is None else max_delay
        label = name or getattr(operation, "__name__", "graph call")

        last_error: Optional[BaseException] = None
        for attempt in range(attempts):
            try:
                result = await operation()
            except Exception as e:
                if not is_rate_limit_error(e):
                    raise
                last_error = e
                if attempt == attempts - 1:
                    break
                delay = backoff_delay(attempt, base, cap)
                logger.warning(
                    f"Rate limited calling {label} (attempt {attempt + 1}/{attempts}), "
                    f"retrying in {delay:.1f}s"
                )
                await self._sleep(delay)
                continue

            if self.success_cooldown > 0:
                await self._sleep(self.success_cooldown)
            return result

        logger.error(f"Giving up on {label} after {attempts} rate-limited attempts")
        raise MaxRetriesExceeded(attempts, last_error) from last_error

    def planned_delays(self, max_attempts: Optional[int] = None) -> List[float]:
        """Backoff schedule between attempts, for logging and diagnostics."""
        attempts = max_attempts or self.max_attempts
        return [backoff_delay(i, self.base_delay, self.max_delay) for i in range(attempts - 1)]
