import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..ports.rate_limiter import RateLimiter, RateLimitDecision
from ...exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitTier:
    name: str
    max_requests: int
    window_seconds: int

    def exceeded_message(self, reset_in: int) -> str:
        if self.window_seconds >= 3600:
            return f"Hourly limit reached. Please try again in {math.ceil(reset_in / 60)} minutes."
        return f"Too many requests. Please try again in {reset_in} seconds."


def chat_tiers(per_minute: int, per_hour: int) -> List[RateLimitTier]:
    return [
        RateLimitTier("minute", per_minute, 60),
        RateLimitTier("hour", per_hour, 3600),
    ]


@dataclass
class RateLimitService:
    limiter: RateLimiter

    def check(self, scope: str, subject: str, tiers: List[RateLimitTier], status_code: Optional[int] = None, message: Optional[str] = None) -> Dict[str, RateLimitDecision]:
        """Count one request against every tier, in order.

        Raises RateLimitExceededError on the first tier that is full. If the
        counter store fails the request is allowed and the error is logged;
        the decisions gathered so far are returned.
        """
        decisions: Dict[str, RateLimitDecision] = {}
        for tier in tiers:
            key = f"{scope}:{subject}:{tier.name}"
            try:
                decision = self.limiter.hit(key, tier.max_requests, tier.window_seconds)
            except Exception as e:
                logger.error(f"Rate limit check failed for {scope}:{subject}, allowing request: {e}", exc_info=True)
                return decisions
            if not decision.allowed:
                logger.warning(f"Rate limit exceeded for {key}")
                raise RateLimitExceededError(
                    message or tier.exceeded_message(decision.reset_in),
                    retry_after=decision.reset_in,
                    status_code=status_code,
                    details={"tier": tier.name, "reset_in": decision.reset_in},
                )
            decisions[tier.name] = decision
        return decisions
