"""
Request scheduler for outbound Graph API calls.

Fixed window accounting (N requests per window) plus a minimum spacing
between consecutive requests. Clock and sleep are injectable so the window
logic can be driven deterministically.
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 50
DEFAULT_WINDOW_SECONDS = 5 * 60
DEFAULT_MIN_INTERVAL_SECONDS = 2.0


class RateLimiter:
    """Window + spacing rate limiter shared by every Graph API call."""

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock: Optional[asyncio.Lock] = None

        self.window_start: float = clock()
        self.window_requests: int = 0
        self.last_request_time: Optional[float] = None
        logger.info(
            f"RateLimiter initialized: {max_requests} requests / {window_seconds:.0f}s, "
            f"min interval {min_interval:.1f}s"
        )

    @property
    def lock(self) -> asyncio.Lock:
        # Created lazily so the limiter can be built outside a running loop
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def acquire(self) -> None:
        """Wait until the next request may be sent, then record it."""
        async with self.lock:
            now = self._clock()
            if now - self.window_start >= self.window_seconds:
                self._reset_window(now)

            if self.window_requests >= self.max_requests:
                wait_time = max(0.0, self.window_start + self.window_seconds - now)
                logger.warning(
                    f"Rate limit window full ({self.window_requests}/{self.max_requests}). "
                    f"Waiting {wait_time:.1f}s for the next window."
                )
                if wait_time > 0:
                    await self._sleep(wait_time)
                self._reset_window(self._clock())

            if self.last_request_time is not None:
                gap = self._clock() - self.last_request_time
                if gap < self.min_interval:
                    wait_time = self.min_interval - gap
                    logger.debug(f"Spacing requests: sleeping {wait_time:.2f}s")
                    await self._sleep(wait_time)

            self.last_request_time = self._clock()
            self.window_requests += 1

    def _reset_window(self, now: float) -> None:
        self.window_start = now
        self.window_requests = 0

    def get_wait_time(self) -> float:
        """Estimate of how long the next acquire() would block."""
        now = self._clock()
        if now - self.window_start >= self.window_seconds:
            window_wait = 0.0
        elif self.window_requests >= self.max_requests:
            window_wait = self.window_start + self.window_seconds - now
        else:
            window_wait = 0.0
        spacing_wait = 0.0
        if self.last_request_time is not None:
            spacing_wait = max(0.0, self.min_interval - (now - self.last_request_time))
        return max(window_wait, spacing_wait)
