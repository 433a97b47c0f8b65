import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import delete, func, or_, update
from sqlmodel import Session, select

from .....db.models import VerificationCode
from .....application.ports.verification_code_repo import VerificationCodeRepository, VerificationCodeDto
from .....exceptions import InvalidOrExpiredCodeError
from .....utils import generate_secure_otp, utcnow

logger = logging.getLogger(__name__)


class SqlVerificationCodeRepository(VerificationCodeRepository):
    def __init__(self, session: Session, timeout_minutes: int = 2, code_factory: Callable[[], str] = generate_secure_otp):
        self.session = session
        self.timeout_minutes = timeout_minutes
        self.code_factory = code_factory

    def _to_dto(self, rec: VerificationCode) -> VerificationCodeDto:
        return VerificationCodeDto(
            id=rec.id,
            phone=rec.phone,
            code=rec.code,
            expires_at=rec.expires_at,
            is_used=rec.is_used,
            created_at=rec.created_at,
            user_id=rec.user_id,
        )

    def create(self, phone: str, code: str, expires_at: datetime, user_id: Optional[str] = None) -> VerificationCodeDto:
        rec = VerificationCode(phone=phone, code=code, expires_at=expires_at, user_id=user_id)
        self.session.add(rec)
        self.session.commit()
        self.session.refresh(rec)
        return self._to_dto(rec)

    def issue(self, phone: str) -> str:
        # Earlier codes for the phone stay valid until they expire or are used
        code = self.code_factory()
        self.create(phone, code, utcnow() + timedelta(minutes=self.timeout_minutes))
        return code

    def claim(self, phone: str, code: str) -> None:
        now = utcnow()
        candidate_id = self.session.exec(
            select(VerificationCode.id)
            .where(
                VerificationCode.phone == phone,
                VerificationCode.code == code,
                VerificationCode.is_used == False,  # noqa: E712
                VerificationCode.expires_at > now,
            )
            .order_by(VerificationCode.created_at.desc())
        ).first()
        if candidate_id is None:
            raise InvalidOrExpiredCodeError()

        # Only the request whose UPDATE flips is_used wins the code
        result = self.session.connection().execute(
            update(VerificationCode)
            .where(VerificationCode.id == candidate_id, VerificationCode.is_used == False)  # noqa: E712
            .values(is_used=True)
        )
        claimed = result.rowcount == 1
        self.session.commit()
        if not claimed:
            logger.info("Verification code %s was claimed concurrently", candidate_id)
            raise InvalidOrExpiredCodeError()

    def recent_count(self, phone: str, window_minutes: int) -> int:
        since = utcnow() - timedelta(minutes=window_minutes)
        count = self.session.exec(
            select(func.count())
            .select_from(VerificationCode)
            .where(VerificationCode.phone == phone, VerificationCode.created_at >= since)
        ).one()
        return int(count)

    def cleanup(self) -> int:
        result = self.session.connection().execute(
            delete(VerificationCode).where(
                or_(VerificationCode.is_used == True, VerificationCode.expires_at <= utcnow())  # noqa: E712
            )
        )
        self.session.commit()
        return result.rowcount or 0
