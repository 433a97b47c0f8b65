import asyncio
import logging
from typing import Callable, Optional

from sqlmodel import Session

from .database import engine as default_engine
from .application.services.cleanup_service import CleanupReport, CleanupService
from .infrastructure.persistence.sqlalchemy.repositories.refresh_token_repository_sql import SqlRefreshTokenRepository
from .infrastructure.persistence.sqlalchemy.repositories.verification_code_repository_sql import SqlVerificationCodeRepository

logger = logging.getLogger(__name__)


def run_cleanup_once(engine=None) -> CleanupReport:
    """One cleanup pass in its own session."""
    with Session(engine or default_engine) as session:
        service = CleanupService(
            code_repo=SqlVerificationCodeRepository(session),
            refresh_repo=SqlRefreshTokenRepository(session),
        )
        return service.run()


async def cleanup_loop(interval_seconds: float, job: Optional[Callable[[], CleanupReport]] = None, max_runs: Optional[int] = None) -> None:
    """Run ``job`` every ``interval_seconds`` until cancelled.

    A failed pass is logged and the loop keeps going.
    """
    job = job or run_cleanup_once
    runs = 0
    while max_runs is None or runs < max_runs:
        await asyncio.sleep(interval_seconds)
        runs += 1
        try:
            await asyncio.to_thread(job)
        except Exception:
            logger.exception("Periodic cleanup failed")
