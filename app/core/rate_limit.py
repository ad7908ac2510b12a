from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable


class RateLimiter:
    """In-memory sliding-window rate limiter keyed by client identity."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: dict[str, deque[float]] = {}
        self._next_sweep = clock() + window_seconds

    def check(self, key: str) -> float | None:
        """Record a hit; return retry_after seconds if rate-limited."""
        now = self._clock()
        window_start = now - self.window_seconds
        if now >= self._next_sweep:
            self._sweep(window_start)
            self._next_sweep = now + self.window_seconds
        bucket = self._requests.setdefault(key, deque())
        # drop expired hits
        while bucket and bucket[0] <= window_start:
            bucket.popleft()
        if len(bucket) >= self.max_requests:
            retry_after = bucket[0] + self.window_seconds - now
            return max(retry_after, 0.0)
        bucket.append(now)
        return None

    def _sweep(self, window_start: float) -> None:
        """Forget clients whose newest hit has left the window."""
        stale = [key for key, hits in self._requests.items() if not hits or hits[-1] <= window_start]
        for key in stale:
            del self._requests[key]

    @property
    def tracked_clients(self) -> int:
        return len(self._requests)

    def reset(self) -> None:
        self._requests.clear()
