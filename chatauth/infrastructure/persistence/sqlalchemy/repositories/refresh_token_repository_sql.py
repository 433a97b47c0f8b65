from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import delete, func, or_, update
from sqlmodel import Session, select

from .....db.models import RefreshToken, User
from .....application.ports.refresh_token_repo import RefreshTokenRepository, RefreshTokenDto
from .....application.ports.user_repo import UserDto
from .....utils import utcnow
from .user_repository_sql import user_to_dto


class SqlRefreshTokenRepository(RefreshTokenRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, rec: RefreshToken) -> RefreshTokenDto:
        return RefreshTokenDto(
            id=rec.id,
            token=rec.token,
            user_id=rec.user_id,
            expires_at=rec.expires_at,
            is_revoked=rec.is_revoked,
            created_at=rec.created_at,
        )

    def create(self, user_id: str, token: str, expires_at: datetime) -> RefreshTokenDto:
        rec = RefreshToken(user_id=user_id, token=token, expires_at=expires_at)
        self.session.add(rec)
        self.session.commit()
        self.session.refresh(rec)
        return self._to_dto(rec)

    def find_valid(self, token: str) -> Optional[Tuple[RefreshTokenDto, UserDto]]:
        row = self.session.exec(
            select(RefreshToken, User)
            .join(User, User.id == RefreshToken.user_id)
            .where(
                RefreshToken.token == token,
                RefreshToken.is_revoked == False,  # noqa: E712
                RefreshToken.expires_at > utcnow(),
            )
        ).first()
        if row is None:
            return None
        rec, user = row
        return self._to_dto(rec), user_to_dto(user)

    def revoke(self, token: str) -> bool:
        result = self.session.connection().execute(
            update(RefreshToken)
            .where(RefreshToken.token == token, RefreshToken.is_revoked == False)  # noqa: E712
            .values(is_revoked=True)
        )
        self.session.commit()
        return result.rowcount == 1

    def revoke_all_for_user(self, user_id: str) -> int:
        result = self.session.connection().execute(
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.is_revoked == False)  # noqa: E712
            .values(is_revoked=True)
        )
        self.session.commit()
        return result.rowcount or 0

    def count_active_for_user(self, user_id: str) -> int:
        count = self.session.exec(
            select(func.count())
            .select_from(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.is_revoked == False,  # noqa: E712
                RefreshToken.expires_at > utcnow(),
            )
        ).one()
        return int(count)

    def cleanup(self) -> int:
        result = self.session.connection().execute(
            delete(RefreshToken).where(
                or_(RefreshToken.is_revoked == True, RefreshToken.expires_at <= utcnow())  # noqa: E712
            )
        )
        self.session.commit()
        return result.rowcount or 0
