"""Sliding-window rate limiter keyed by client address"""
import time
from collections import deque
from typing import Deque, Dict

from .config import config


class RateLimiter:
    """
    Allows at most `limit` hits per key within any `window` seconds

    Keys whose hits have all left the window are dropped, and idle keys are
    swept at most once per window, so memory follows the active clients.
    """

    def __init__(self, limit: int = None, window: float = None, clock=time.monotonic):
        self.limit = limit if limit is not None else config.WIDGET_RATE_LIMIT
        self.window = window if window is not None else config.WIDGET_RATE_WINDOW
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()

    def _prune(self, key: str, now: float) -> Deque[float]:
        hits = self._hits.get(key)
        if hits is None:
            return deque()
        while hits and now - hits[0] >= self.window:
            hits.popleft()
        if not hits:
            del self._hits[key]
        return hits

    def _sweep(self, now: float):
        if now - self._last_sweep < self.window:
            return
        self._last_sweep = now
        for key in [k for k, hits in self._hits.items() if now - hits[-1] >= self.window]:
            del self._hits[key]

    def hit(self, key: str) -> bool:
        """Record a request; False when the key is over its limit"""
        now = self._clock()
        self._sweep(now)
        hits = self._prune(key, now)
        if len(hits) >= self.limit:
            return False
        hits.append(now)
        self._hits[key] = hits
        return True

    def retry_after(self, key: str) -> int:
        """Seconds until the oldest hit leaves the window"""
        now = self._clock()
        hits = self._prune(key, now)
        if len(hits) < self.limit:
            return 0
        return max(1, int(self.window - (now - hits[0]) + 0.999))

    def __len__(self) -> int:
        return len(self._hits)
