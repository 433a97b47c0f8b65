import logging
from typing import Optional, Tuple

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....db.models import User, Role, RefreshToken, VerificationCode
from .....application.ports.user_repo import UserRepository, UserDto
from .....exceptions import ConflictError
from .....utils import utcnow

logger = logging.getLogger(__name__)


def user_to_dto(user: User) -> UserDto:
    return UserDto(
        id=user.id,
        phone=user.phone,
        role=Role(user.role),
        name=user.name,
        email=user.email,
        password_hash=user.password_hash,
        is_suspended=bool(user.is_suspended),
        suspended_at=user.suspended_at,
        suspended_reason=user.suspended_reason,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


class SqlUserRepository(UserRepository):
    def __init__(self, session: Session):
        self.session = session

    def _get(self, user_id: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.id == user_id)).first()

    def get_by_phone(self, phone: str) -> Optional[UserDto]:
        user = self.session.exec(select(User).where(User.phone == phone)).first()
        return user_to_dto(user) if user else None

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        user = self._get(user_id)
        return user_to_dto(user) if user else None

    def create_if_absent(self, phone: str) -> Tuple[UserDto, bool]:
        existing = self.get_by_phone(phone)
        if existing:
            return existing, False
        user = User(phone=phone)
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError:
            # Another request registered the same phone first
            self.session.rollback()
            existing = self.get_by_phone(phone)
            if existing is None:
                raise
            logger.info("Concurrent registration resolved to existing user %s", existing.id)
            return existing, False
        self.session.refresh(user)
        return user_to_dto(user), True

    def create(self, phone: str, name: Optional[str] = None, email: Optional[str] = None, role: Role = Role.USER, password_hash: Optional[str] = None) -> UserDto:
        user = User(phone=phone, name=name, email=email, role=role, password_hash=password_hash)
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise ConflictError("A user with this phone number already exists")
        self.session.refresh(user)
        return user_to_dto(user)

    def set_password_hash(self, user_id: str, password_hash: str) -> None:
        user = self._get(user_id)
        if not user:
            return
        user.password_hash = password_hash
        user.updated_at = utcnow()
        self.session.add(user)
        self.session.commit()

    def set_role(self, user_id: str, role: Role) -> None:
        user = self._get(user_id)
        if not user:
            return
        user.role = role
        user.updated_at = utcnow()
        self.session.add(user)
        self.session.commit()

    def set_suspension(self, user_id: str, suspended: bool, reason: Optional[str] = None) -> None:
        user = self._get(user_id)
        if not user:
            return
        user.is_suspended = suspended
        user.suspended_at = utcnow() if suspended else None
        user.suspended_reason = reason if suspended else None
        user.updated_at = utcnow()
        self.session.add(user)
        self.session.commit()

    def delete(self, user_id: str) -> bool:
        user = self._get(user_id)
        if not user:
            return False
        conn = self.session.connection()
        conn.execute(delete(RefreshToken).where(RefreshToken.user_id == user_id))
        conn.execute(delete(VerificationCode).where(VerificationCode.user_id == user_id))
        self.session.delete(user)
        self.session.commit()
        return True
