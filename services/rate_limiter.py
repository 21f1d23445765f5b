# /services/rate_limiter.py
"""
In-memory sliding-window rate limiter.
Keys are anonymized client IPs.
State is per process and lost on restart.
"""
import time
from collections import deque
from typing import Callable, Deque, Dict


class SlidingWindowRateLimiter:
    """
    Allows at most `limit` hits per key within any `window_seconds` span.

    Anonymized IPs rotate daily, so keys that have gone quiet are dropped:
    a key is removed as soon as its own bucket drains, and every window the
    whole map is swept for buckets whose newest hit has expired.
    """

    def __init__(self, limit: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._buckets: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._buckets)

    def _sweep(self, now: float) -> None:
        cutoff = now - self.window_seconds
        stale = [key for key, bucket in self._buckets.items() if not bucket or bucket[-1] <= cutoff]
        for key in stale:
            del self._buckets[key]
        self._last_sweep = now

    def hit(self, key: str) -> bool:
        """Record a hit for key. Returns False when the key is over its limit."""
        now = self._clock()
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(now)

        bucket = self._buckets.get(key)
        if bucket is not None:
            while bucket and bucket[0] <= now - self.window_seconds:
                bucket.popleft()
            if not bucket:
                del self._buckets[key]
                bucket = None

        if bucket is not None and len(bucket) >= self.limit:
            return False
        if self.limit <= 0:
            return False

        if bucket is None:
            bucket = self._buckets[key] = deque()
        bucket.append(now)
        return True

    def remaining(self, key: str) -> int:
        now = self._clock()
        bucket = self._buckets.get(key)
        if not bucket:
            return self.limit
        active = sum(1 for t in bucket if t > now - self.window_seconds)
        return max(0, self.limit - active)

    def reset(self) -> None:
        self._buckets.clear()
        self._last_sweep = self._clock()
