import logging
import time
from typing import Callable

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from ...db.models import RateLimitCounter
from ...application.ports.rate_limiter import RateLimiter, RateLimitDecision
from .fixed_window import fixed_window_step

logger = logging.getLogger(__name__)


class SqlRateLimiter(RateLimiter):
    """Counters in the rate_limits table, shared by every worker.

    Writes are compare-and-set on (count, last_request) so two workers
    never both consume the last slot of a window.
    """

    def __init__(self, session: Session, clock: Callable[[], float] = time.time, max_attempts: int = 5) -> None:
        self.session = session
        self._clock = clock
        self.max_attempts = max_attempts

    def hit(self, key: str, max_requests: int, window_seconds: int) -> RateLimitDecision:
        try:
            return self._hit(key, max_requests, window_seconds)
        except SQLAlchemyError:
            # The session is shared with the rest of the request
            self.session.rollback()
            raise

    def _hit(self, key: str, max_requests: int, window_seconds: int) -> RateLimitDecision:
        window_ms = window_seconds * 1000
        for _ in range(self.max_attempts):
            now = int(self._clock() * 1000)
            row = self.session.exec(
                select(RateLimitCounter.count, RateLimitCounter.last_request).where(RateLimitCounter.key == key)
            ).first()

            if row is None:
                state, decision = fixed_window_step(None, None, now, max_requests, window_ms)
                self.session.add(RateLimitCounter(key=key, count=state[0], last_request=state[1]))
                try:
                    self.session.commit()
                except IntegrityError:
                    self.session.rollback()
                    continue
                return decision

            count, last_request = row
            state, decision = fixed_window_step(count, last_request, now, max_requests, window_ms)
            if state is None:
                self.session.rollback()
                return decision

            result = self.session.connection().execute(
                update(RateLimitCounter)
                .where(
                    RateLimitCounter.key == key,
                    RateLimitCounter.count == count,
                    RateLimitCounter.last_request == last_request,
                )
                .values(count=state[0], last_request=state[1])
            )
            if result.rowcount == 1:
                self.session.commit()
                return decision
            self.session.rollback()

        raise RuntimeError(f"Rate limit counter {key} is under contention")
