"""Client-side rate limiting for the Limitless API."""

import time
from collections import deque
from collections.abc import Callable


class RateLimiter:
    """Sliding-window rate limiter.

    Example:
        >>> limiter = RateLimiter(requests_per_period=60, period_seconds=60)
        >>> limiter.wait_if_needed()  # Blocks if rate limit would be exceeded
    """

    def __init__(
        self,
        requests_per_period: int,
        period_seconds: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize rate limiter.

        Args:
            requests_per_period: Maximum number of requests allowed per period
            period_seconds: Time period in seconds for the rate limit window
            clock: Monotonic time source
            sleep: Blocking sleep function
        """
        if requests_per_period < 1:
            raise ValueError("requests_per_period must be at least 1")
        self.requests_per_period = requests_per_period
        self.period_seconds = period_seconds
        self.request_times: deque[float] = deque()
        self._clock = clock
        self._sleep = sleep

    def _evict(self, now: float) -> None:
        while self.request_times and self.request_times[0] <= now - self.period_seconds:
            self.request_times.popleft()

    def wait_if_needed(self) -> float:
        """Block until another request fits in the window, then record it.

        Called from worker threads (the sync orchestrator runs HTTP calls
        through asyncio.to_thread), never on the event loop itself.

        Returns:
            Seconds slept
        """
        now = self._clock()
        self._evict(now)

        slept = 0.0
        if len(self.request_times) >= self.requests_per_period:
            slept = self.period_seconds - (now - self.request_times[0]) + 0.1
            if slept > 0:
                self._sleep(slept)
            now = self._clock()
            self._evict(now)

        self.request_times.append(now)
        return max(slept, 0.0)

    def reset(self) -> None:
        """Clear all tracked requests."""
        self.request_times.clear()
