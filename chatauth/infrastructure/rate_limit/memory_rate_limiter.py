import threading
import time
from typing import Callable, Dict, Tuple

from ...application.ports.rate_limiter import RateLimiter, RateLimitDecision
from .fixed_window import fixed_window_step


class InMemoryRateLimiter(RateLimiter):
    """Process-local counters; only suitable for tests and single-worker runs."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._store: Dict[str, Tuple[int, int]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def hit(self, key: str, max_requests: int, window_seconds: int) -> RateLimitDecision:
        now = int(self._clock() * 1000)
        with self._lock:
            count, last = self._store.get(key, (None, None))
            state, decision = fixed_window_step(count, last, now, max_requests, window_seconds * 1000)
            if state is not None:
                self._store[key] = state
        return decision
