from __future__ import annotations

import threading
from collections import deque


class SlidingWindowRateLimiter:
    """Per-client request budget over a sliding time window.

    Clients whose window has fully drained are evicted, so the number of
    tracked keys stays bounded by the clients seen in the last window.
    """

    def __init__(self, *, limit: int, window_seconds: float) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._buckets: dict[str, deque[float]] = {}
        self._last_sweep = 0.0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._buckets)

    def allow(self, client: str, now: float) -> bool:
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            bucket = self._buckets.setdefault(client, deque())
            self._drain(bucket, now)
            if len(bucket) >= self.limit:
                return False
            bucket.append(now)
            return True

    def _drain(self, bucket: deque[float], now: float) -> None:
        while bucket and now - bucket[0] > self.window_seconds:
            bucket.popleft()

    def _sweep(self, now: float) -> None:
        for client in list(self._buckets):
            bucket = self._buckets[client]
            self._drain(bucket, now)
            if not bucket:
                del self._buckets[client]
        self._last_sweep = now
