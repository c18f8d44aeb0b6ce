"""
Rate Limiter Module.

Steam throttles market requests per source IP. Every network identity
(each proxy, plus the direct connection) gets its own sliding window so
monitors sharing an identity stay inside its budget while monitors on
different proxies do not slow each other down.
"""

import asyncio
import threading
import time
from collections import deque
from typing import Dict, Optional
from loguru import logger

DIRECT_IDENTITY = "direct"


class SlidingWindowLimiter:
    """
    Sliding window rate limiter.
    More accurate than fixed window, prevents burst at window boundaries.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        name: str = "default",
    ):
        """
        Initialize sliding window limiter.

        Args:
            max_requests: Maximum requests in window
            window_seconds: Window duration in seconds
            name: Name for logging
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.name = name
        self.requests: deque = deque()
        self._lock = asyncio.Lock()

    def _cleanup(self):
        """Remove expired timestamps."""
        cutoff = time.monotonic() - self.window_seconds

        while self.requests and self.requests[0] < cutoff:
            self.requests.popleft()

    async def acquire(self) -> bool:
        """
        Acquire a request slot, waiting if necessary.

        Returns:
            True when acquired
        """
        async with self._lock:
            self._cleanup()

            if len(self.requests) < self.max_requests:
                self.requests.append(time.monotonic())
                return True

            # Wait until the oldest request leaves the window
            oldest = self.requests[0]
            wait_time = (oldest + self.window_seconds) - time.monotonic()

            if wait_time > 0:
                logger.debug(f"[{self.name}] Rate limited, waiting {wait_time:.3f}s")
                await asyncio.sleep(wait_time)

            self._cleanup()
            self.requests.append(time.monotonic())
            return True

    @property
    def available(self) -> int:
        """Get available request slots."""
        self._cleanup()
        return self.max_requests - len(self.requests)


class IdentityRateLimiter:
    """
    One SlidingWindowLimiter per network identity, created on first use.
    """

    def __init__(self, requests_per_minute: int, window_seconds: float = 60.0):
        self.requests_per_minute = requests_per_minute
        self.window_seconds = window_seconds
        self._limiters: Dict[str, SlidingWindowLimiter] = {}
        self._registry_lock = threading.Lock()

        self._stats = {"requests": 0, "identities": 0}

    def limiter_for(self, identity: Optional[str]) -> SlidingWindowLimiter:
        """Get or create the limiter for an identity (None means direct)."""
        key = identity or DIRECT_IDENTITY
        with self._registry_lock:
            limiter = self._limiters.get(key)
            if limiter is None:
                limiter = SlidingWindowLimiter(
                    max_requests=self.requests_per_minute,
                    window_seconds=self.window_seconds,
                    name=key,
                )
                self._limiters[key] = limiter
                self._stats["identities"] += 1
            return limiter

    async def acquire(self, identity: Optional[str] = None) -> bool:
        """Acquire a request slot on the given identity."""
        self._stats["requests"] += 1
        return await self.limiter_for(identity).acquire()

    def get_stats(self) -> dict:
        """Get rate limiting statistics."""
        return {
            **self._stats,
            "available": {
                name: limiter.available for name, limiter in self._limiters.items()
            },
        }
