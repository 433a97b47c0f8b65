import time
from typing import Callable, Dict

import redis

from ...application.ports.rate_limiter import RateLimiter, RateLimitDecision
from .fixed_window import fixed_window_step


class RedisRateLimiter(RateLimiter):
    def __init__(self, url: str, prefix: str = "rl:", clock: Callable[[], float] = time.time) -> None:
        self.client = redis.Redis.from_url(url)
        self.prefix = prefix
        self._clock = clock

    def hit(self, key: str, max_requests: int, window_seconds: int) -> RateLimitDecision:
        rk = f"{self.prefix}{key}"
        window_ms = window_seconds * 1000
        outcome: Dict[str, RateLimitDecision] = {}

        def _step(pipe) -> None:
            # Runs under WATCH; redis-py retries when the key changes underneath
            raw_count, raw_last = pipe.hmget(rk, "count", "last_request")
            count = int(raw_count) if raw_count is not None else None
            last = int(raw_last) if raw_last is not None else None
            now = int(self._clock() * 1000)
            state, decision = fixed_window_step(count, last, now, max_requests, window_ms)
            pipe.multi()
            if state is not None:
                pipe.hset(rk, mapping={"count": state[0], "last_request": state[1]})
                pipe.pexpire(rk, window_ms)
            outcome["decision"] = decision

        self.client.transaction(_step, rk)
        return outcome["decision"]
