import logging
from dataclasses import dataclass

from ..ports.verification_code_repo import VerificationCodeRepository
from ..ports.refresh_token_repo import RefreshTokenRepository

logger = logging.getLogger(__name__)


@dataclass
class CleanupReport:
    codes_deleted: int
    tokens_deleted: int


@dataclass
class CleanupService:
    code_repo: VerificationCodeRepository
    refresh_repo: RefreshTokenRepository

    def run(self) -> CleanupReport:
        report = CleanupReport(
            codes_deleted=self.code_repo.cleanup(),
            tokens_deleted=self.refresh_repo.cleanup(),
        )
        logger.info(f"Cleanup removed {report.codes_deleted} verification code(s) and {report.tokens_deleted} refresh token(s)")
        return report
