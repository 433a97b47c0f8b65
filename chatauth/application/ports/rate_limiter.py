from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    # Seconds until the window resets
    reset_in: int


class RateLimiter(Protocol):
    def hit(self, key: str, max_requests: int, window_seconds: int) -> RateLimitDecision:
        ...
