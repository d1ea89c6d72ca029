"""Adaptive client-side rate limiting."""

import asyncio
import time


class AdaptiveRateLimiter:
    """Token bucket whose refill rate reacts to the server.

    Every rate-limit response halves the rate (down to ``min_rate``) and
    pauses acquisition for ``retry_after`` seconds when the server gave one.
    Each success nudges the rate back up towards ``max_rate``.
    """

    def __init__(
        self,
        initial_rate: float = 5.0,
        min_rate: float = 0.5,
        max_rate: float = 20.0,
        increase_factor: float = 1.05,
        decrease_factor: float = 0.5,
    ) -> None:
        if not min_rate <= initial_rate <= max_rate:
            raise ValueError("initial_rate must lie between min_rate and max_rate")
        self.rate = initial_rate
        self.min_rate = min_rate
        self.max_rate = max_rate
        self.increase_factor = increase_factor
        self.decrease_factor = decrease_factor

        self._tokens = 1.0
        self._last_refill = time.monotonic()
        self._paused_until = 0.0
        self._lock = asyncio.Lock()

    def _refill(self, now: float) -> None:
        elapsed = now - self._last_refill
        self._last_refill = now
        # Bucket holds at most one second's worth of requests.
        self._tokens = min(max(self.rate, 1.0), self._tokens + elapsed * self.rate)

    async def acquire(self) -> None:
        """Wait until one request may be sent."""
        async with self._lock:
            while True:
                now = time.monotonic()
                if now < self._paused_until:
                    await asyncio.sleep(self._paused_until - now)
                    continue
                self._refill(now)
                if self._tokens >= 1.0:
                    self._tokens -= 1.0
                    return
                await asyncio.sleep((1.0 - self._tokens) / self.rate)

    def on_success(self) -> None:
        self.rate = min(self.max_rate, self.rate * self.increase_factor)

    def on_rate_limit(self, retry_after: float | None = None) -> None:
        self.rate = max(self.min_rate, self.rate * self.decrease_factor)
        self._tokens = 0.0
        if retry_after:
            self._paused_until = max(self._paused_until, time.monotonic() + retry_after)
