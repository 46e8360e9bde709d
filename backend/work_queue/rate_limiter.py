"""
Async token bucket bounding dispatches per period across all workers.
"""

import asyncio
import time


class AsyncTokenBucket:
    """
    Token bucket shared by every worker of a pool.

    At most max_dispatches tokens are available per period; acquire()
    sleeps until one is.
    """

    def __init__(self, max_dispatches: int, period: float = 1.0, _clock=time.monotonic):
        if max_dispatches < 1:
            raise ValueError("max_dispatches must be at least 1")
        if period <= 0:
            raise ValueError("period must be positive")
        self.capacity = float(max_dispatches)
        self.tokens = float(max_dispatches)
        self.refill_rate = max_dispatches / period
        self._clock = _clock
        self.last_refill = _clock()
        self._lock = asyncio.Lock()

    def _refill(self):
        """Refill tokens based on time elapsed"""
        now = self._clock()
        elapsed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    def consume(self, tokens: float = 1.0) -> bool:
        """Try to consume tokens. Returns True if successful."""
        self._refill()
        if self.tokens >= tokens:
            self.tokens -= tokens
            return True
        return False

    def wait_time(self, tokens: float = 1.0) -> float:
        """Seconds until tokens would be available."""
        self._refill()
        if self.tokens >= tokens:
            return 0.0
        return (tokens - self.tokens) / self.refill_rate

    async def acquire(self) -> None:
        async with self._lock:
            while not self.consume():
                await asyncio.sleep(self.wait_time())
