import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..ports.user_repo import UserRepository, UserDto
from ..ports.refresh_token_repo import RefreshTokenRepository
from ..ports.audit_logger import AuditLogger, AuditLogReader, AuditRecord
from ...db.models.users.user import Role
from ...exceptions import ProtectedTargetError, SelfActionError, UserNotFoundError, ValidationError
from ...utils import is_valid_phone

logger = logging.getLogger(__name__)

MAX_AUDIT_PAGE_SIZE = 100


@dataclass
class UserAdminService:
    user_repo: UserRepository
    refresh_repo: RefreshTokenRepository
    audit_logger: AuditLogger
    audit_reader: AuditLogReader

    def _require(self, user_id: str) -> UserDto:
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    def _invalidate_sessions(self, actor_id: str, target_id: str, reason: str, ip_address: Optional[str], user_agent: Optional[str]) -> int:
        revoked = self.refresh_repo.revoke_all_for_user(target_id)
        self.audit_logger.log(
            "session.invalidated",
            resource="session",
            actor_id=actor_id,
            target_id=target_id,
            details={"reason": reason, "revoked": revoked},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return revoked

    def get_profile(self, user_id: str) -> UserDto:
        return self._require(user_id)

    def list_audit_logs(self, actor_id: Optional[str] = None, target_id: Optional[str] = None, action: Optional[str] = None, resource: Optional[str] = None, limit: int = 50, offset: int = 0) -> Tuple[List[AuditRecord], int]:
        if not 1 <= limit <= MAX_AUDIT_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_AUDIT_PAGE_SIZE}")
        if offset < 0:
            raise ValidationError("offset must not be negative")
        return self.audit_reader.query(actor_id=actor_id, target_id=target_id, action=action, resource=resource, limit=limit, offset=offset)

    def create_user(self, actor_id: str, phone: str, name: Optional[str] = None, email: Optional[str] = None, role: Role = Role.USER, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> UserDto:
        if not is_valid_phone(phone):
            raise ValidationError("Invalid phone number format")
        user = self.user_repo.create(phone=phone, name=name, email=email, role=role)
        self.audit_logger.log(
            "user.created",
            resource="user",
            actor_id=actor_id,
            target_id=user.id,
            phone=phone,
            details={"role": role.value},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(f"User {user.id} created by {actor_id} with role {role.value}")
        return user

    def change_role(self, actor_id: str, target_id: str, new_role: Role, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> UserDto:
        if actor_id == target_id:
            raise SelfActionError("Cannot change your own role")
        target = self._require(target_id)

        self.user_repo.set_role(target_id, new_role)
        self.audit_logger.log(
            "user.role.changed",
            resource="user",
            actor_id=actor_id,
            target_id=target_id,
            details={"old_role": target.role.value, "new_role": new_role.value},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        # Outstanding tokens carry the old role claim
        self._invalidate_sessions(actor_id, target_id, "role_changed", ip_address, user_agent)
        logger.info(f"User {target_id} role changed {target.role.value} -> {new_role.value} by {actor_id}")
        return self._require(target_id)

    def suspend(self, actor_id: str, target_id: str, reason: Optional[str] = None, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> UserDto:
        if actor_id == target_id:
            raise SelfActionError("Cannot suspend yourself")
        target = self._require(target_id)
        if target.is_admin:
            raise ProtectedTargetError("Cannot suspend admin users")

        self.user_repo.set_suspension(target_id, True, reason)
        self.audit_logger.log(
            "user.suspended",
            resource="user",
            actor_id=actor_id,
            target_id=target_id,
            details={"reason": reason},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self._invalidate_sessions(actor_id, target_id, "suspended", ip_address, user_agent)
        logger.info(f"User {target_id} suspended by {actor_id}")
        return self._require(target_id)

    def unsuspend(self, actor_id: str, target_id: str, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> UserDto:
        self._require(target_id)
        self.user_repo.set_suspension(target_id, False)
        self.audit_logger.log(
            "user.unsuspended",
            resource="user",
            actor_id=actor_id,
            target_id=target_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(f"User {target_id} unsuspended by {actor_id}")
        return self._require(target_id)

    def delete(self, actor_id: str, target_id: str, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> None:
        if actor_id == target_id:
            raise SelfActionError("Cannot delete yourself")
        target = self._require(target_id)
        if target.is_admin:
            raise ProtectedTargetError("Cannot delete admin users")

        self.user_repo.delete(target_id)
        self.audit_logger.log(
            "user.deleted",
            resource="user",
            actor_id=actor_id,
            target_id=target_id,
            phone=target.phone,
            details={"role": target.role.value},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(f"User {target_id} deleted by {actor_id}")
