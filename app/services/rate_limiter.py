"""
Rate Limiter
============
Rolling-window request limiter guarding bug-report submission.

Policy:
    - At most ``max_requests`` hits per ``window_seconds`` per key
    - Keys are client addresses; each limiter instance has its own counters
    - Rejected hits are NOT recorded, so a client regains capacity as soon
      as its oldest accepted hit leaves the window
    - Keys with no hits left in the window are forgotten, so memory tracks
      only recently active clients
    - In-memory only; counters reset on restart
"""
import threading
import time
import logging
from collections import deque
from typing import Callable, Deque, Dict

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """
    Usage:
        limiter = SlidingWindowRateLimiter(max_requests=10, window_seconds=300)
        if not limiter.hit("203.0.113.7"):
            # reject
            ...
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def _prune(self, hits: Deque[float], now: float) -> None:
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

    def _sweep_locked(self, now: float) -> int:
        idle = []
        for key, hits in self._hits.items():
            self._prune(hits, now)
            if not hits:
                idle.append(key)
        for key in idle:
            del self._hits[key]
        self._last_sweep = now
        return len(idle)

    def hit(self, key: str = "global") -> bool:
        """Record a request for ``key``. Returns False when over the limit."""
        now = self._clock()
        with self._lock:
            # Keys of clients that went quiet are dropped at most once per window
            if now - self._last_sweep >= self.window_seconds:
                self._sweep_locked(now)

            hits = self._hits.pop(key, None) or deque()
            self._prune(hits, now)
            allowed = len(hits) < self.max_requests
            if allowed:
                hits.append(now)
            if hits:
                self._hits[key] = hits
            if not allowed:
                logger.warning("Rate limit exceeded for %s", key)
            return allowed

    def remaining(self, key: str = "global") -> int:
        now = self._clock()
        with self._lock:
            hits = self._hits.get(key)
            if hits is None:
                return self.max_requests
            self._prune(hits, now)
            if not hits:
                del self._hits[key]
            return max(0, self.max_requests - len(hits))

    def sweep(self) -> int:
        """Forget keys whose hits have all left the window. Returns how many were dropped."""
        with self._lock:
            return self._sweep_locked(self._clock())

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
