import math
from typing import Optional, Tuple

from ...application.ports.rate_limiter import RateLimitDecision

CounterState = Tuple[int, int]


def _to_seconds(millis: float) -> int:
    return max(1, math.ceil(millis / 1000))


def fixed_window_step(count: Optional[int], last_request: Optional[int], now: int, max_requests: int, window_ms: int) -> Tuple[Optional[CounterState], RateLimitDecision]:
    """Advance one counter by one request.

    Returns the state to store (None when nothing changes) and the decision.
    The window restarts once ``window_ms`` has elapsed since the last counted
    request; every counted request moves ``last_request`` forward.
    """
    if count is None or last_request is None or now - last_request >= window_ms:
        return (1, now), RateLimitDecision(allowed=True, remaining=max(max_requests - 1, 0), reset_in=_to_seconds(window_ms))

    elapsed = now - last_request
    if count >= max_requests:
        return None, RateLimitDecision(allowed=False, remaining=0, reset_in=_to_seconds(window_ms - elapsed))

    return (count + 1, now), RateLimitDecision(
        allowed=True,
        remaining=max(max_requests - count - 1, 0),
        reset_in=_to_seconds(window_ms - elapsed),
    )
