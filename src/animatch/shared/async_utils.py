"""
Async Utilities for Rate-Limited Catalog Calls.

Provides:
- Sliding-window rate limiter (one per catalog adapter)
- Deadline wrapper that cancels the wrapped call on timeout
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from .exceptions import AdapterTimeoutError, InvalidParameterError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Rate Limiter (Sliding Window Log)
# =============================================================================


@dataclass
class SlidingWindowRateLimiter:
    """
    Sliding-window request counter for one catalog.

    Advises delay, never enforces it: a caller that skips ``wait_time()``
    can still exceed the limit. Limits are validated on construction;
    afterwards no operation raises.

    AniList allows 90 requests/minute, Jikan about 3 requests/second.

    Example:
        limiter = SlidingWindowRateLimiter(max_requests=3, window=1.0)
        async with limiter:
            await make_api_call()
    """

    max_requests: int = 3
    window: float = 1.0  # seconds
    clock: Callable[[], float] = time.monotonic
    _timestamps: deque[float] = field(init=False, default_factory=deque)
    _lock: threading.Lock = field(init=False, default_factory=threading.Lock)

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise InvalidParameterError("max_requests", self.max_requests, "an integer of at least 1")
        if self.window <= 0:
            raise InvalidParameterError("window", self.window, "a positive number of seconds")

    def _prune(self, now: float) -> None:
        cutoff = now - self.window
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def can_proceed(self) -> bool:
        """True iff fewer than ``max_requests`` calls happened inside the window."""
        with self._lock:
            self._prune(self.clock())
            return len(self._timestamps) < self.max_requests

    def record(self) -> None:
        """Record a request issued now."""
        with self._lock:
            self._timestamps.append(self.clock())

    def wait_time(self) -> float:
        """Seconds to wait before the next request may be issued (0 if none)."""
        with self._lock:
            now = self.clock()
            self._prune(now)
            if len(self._timestamps) < self.max_requests:
                return 0.0
            return max(0.0, self.window - (now - self._timestamps[0]))

    @property
    def in_window(self) -> int:
        """Number of requests currently counted inside the window."""
        with self._lock:
            self._prune(self.clock())
            return len(self._timestamps)

    async def acquire(self) -> None:
        """Wait until a request may be issued, then record it."""
        while True:
            delay = self.wait_time()
            if delay <= 0:
                break
            logger.debug(f"Rate limit: waiting {delay:.2f}s")
            await asyncio.sleep(delay)
        self.record()

    async def __aenter__(self) -> SlidingWindowRateLimiter:
        await self.acquire()
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass


# =============================================================================
# Deadlines
# =============================================================================


async def call_with_deadline(
    call: Callable[[], Awaitable[T]],
    timeout: float,
    *,
    source: str,
) -> T:
    """
    Await ``call()`` under a deadline.

    On expiry the in-flight call is cancelled (its HTTP request is torn
    down with it) and AdapterTimeoutError is raised.
    """
    try:
        async with asyncio.timeout(timeout):
            return await call()
    except TimeoutError as e:
        raise AdapterTimeoutError(timeout, source=source) from e
