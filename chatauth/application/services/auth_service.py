import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from ..ports.user_repo import UserRepository, UserDto
from ..ports.verification_code_repo import VerificationCodeRepository
from ..ports.refresh_token_repo import RefreshTokenRepository
from ..ports.sms_provider import SmsProvider
from ..ports.password_hasher import PasswordHasher
from ..ports.audit_logger import AuditLogger
from .token_issuer import TokenIssuer
from ...exceptions import (
    ChatAuthError,
    InvalidCredentialsError,
    PasswordNotSetError,
    RateLimitExceededError,
    TokenRevokedOrNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from ...utils import is_valid_phone

logger = logging.getLogger(__name__)

CODE_SEND_WINDOW_MINUTES = 60
MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 255


@dataclass
class AuthResult:
    access_token: str
    refresh_token: str
    user: UserDto
    access_token_expires_at: datetime
    refresh_token_expires_at: datetime


@dataclass
class RefreshResult:
    access_token: str
    user: UserDto
    access_token_expires_at: datetime


@dataclass
class AuthService:
    user_repo: UserRepository
    code_repo: VerificationCodeRepository
    refresh_repo: RefreshTokenRepository
    token_issuer: TokenIssuer
    sms_provider: SmsProvider
    password_hasher: PasswordHasher
    audit_logger: Optional[AuditLogger] = None
    environment: str = "development"
    codes_per_hour: int = 10

    def _audit(self, action: str, phone: Optional[str] = None, user_id: Optional[str] = None, success: bool = True, details: Optional[Dict] = None) -> None:
        if self.audit_logger is None:
            return
        self.audit_logger.log(action, resource="auth", actor_id=user_id, target_id=user_id, phone=phone, success=success, details=details)

    def send_verification_code(self, phone: str) -> Dict[str, str]:
        if not is_valid_phone(phone):
            raise ValidationError("Invalid phone number format")

        if self.environment != "development":
            recent = self.code_repo.recent_count(phone, CODE_SEND_WINDOW_MINUTES)
            if recent >= self.codes_per_hour:
                self._audit("auth.code.rate_limited", phone=phone, success=False)
                raise RateLimitExceededError(
                    "Too many verification codes requested. Please try again later.",
                    status_code=400,
                )

        code = self.code_repo.issue(phone)
        try:
            self.sms_provider.send(phone, code)
        except ChatAuthError as e:
            self._audit("auth.code.send_failed", phone=phone, success=False, details={"code": e.code})
            raise
        self._audit("auth.code.sent", phone=phone)
        return {"message": "Verification code sent successfully"}

    def login_with_code(self, phone: str, code: str, single_device_mode: bool = False) -> AuthResult:
        try:
            self.code_repo.claim(phone, code)
        except ChatAuthError:
            self._audit("auth.login.code", phone=phone, success=False, details={"reason": "invalid_code"})
            raise

        user, created = self.user_repo.create_if_absent(phone)
        if created:
            logger.info(f"Registered new user {user.id} on first code login")
            self._audit("user.created", phone=phone, user_id=user.id, details={"via": "code_login"})
        result = self._start_session(user, single_device_mode)
        self._audit("auth.login.code", phone=phone, user_id=user.id, details={"single_device": single_device_mode})
        return result

    def login_with_password(self, phone: str, password: str, single_device_mode: bool = False) -> AuthResult:
        user = self.user_repo.get_by_phone(phone)
        if user is None:
            # Unknown phones cost one bcrypt verification, like a wrong password
            self.password_hasher.dummy_verify(password)
            self._audit("auth.login.password", phone=phone, success=False, details={"reason": "unknown_phone"})
            raise InvalidCredentialsError()
        if not user.has_password:
            raise PasswordNotSetError()
        if not self.password_hasher.verify(password, user.password_hash):
            self._audit("auth.login.password", phone=phone, user_id=user.id, success=False, details={"reason": "bad_password"})
            raise InvalidCredentialsError()

        result = self._start_session(user, single_device_mode)
        self._audit("auth.login.password", phone=phone, user_id=user.id, details={"single_device": single_device_mode})
        return result

    def set_password(self, phone: str, code: str, new_password: str) -> Dict[str, str]:
        self.code_repo.claim(phone, code)

        user = self.user_repo.get_by_phone(phone)
        if user is None:
            raise UserNotFoundError(status_code=400)

        if not (MIN_PASSWORD_LENGTH <= len(new_password) <= MAX_PASSWORD_LENGTH):
            raise ValidationError("Password must be between 6 and 255 characters")

        self.user_repo.set_password_hash(user.id, self.password_hasher.hash(new_password))
        self._audit("auth.password.set", phone=phone, user_id=user.id)
        return {"message": "Password set successfully"}

    def refresh_access_token(self, refresh_token: str) -> RefreshResult:
        self.token_issuer.verify_refresh_token(refresh_token)

        found = self.refresh_repo.find_valid(refresh_token)
        if found is None:
            raise TokenRevokedOrNotFoundError()
        _, user = found

        access = self.token_issuer.issue_access_token(user)
        return RefreshResult(access_token=access.token, user=user, access_token_expires_at=access.expires_at)

    def revoke_refresh_token(self, refresh_token: str) -> Dict[str, str]:
        revoked = self.refresh_repo.revoke(refresh_token)
        self._audit("auth.logout", details={"revoked": revoked})
        return {"message": "Logged out successfully"}

    def _start_session(self, user: UserDto, single_device_mode: bool) -> AuthResult:
        if single_device_mode:
            # Revoke first so the pair issued below is the only live session
            revoked = self.refresh_repo.revoke_all_for_user(user.id)
            if revoked:
                logger.info(f"Single-device login revoked {revoked} session(s) for user {user.id}")

        access = self.token_issuer.issue_access_token(user)
        refresh = self.token_issuer.issue_refresh_token(user.id)
        self.refresh_repo.create(user.id, refresh.token, refresh.expires_at)
        return AuthResult(
            access_token=access.token,
            refresh_token=refresh.token,
            user=user,
            access_token_expires_at=access.expires_at,
            refresh_token_expires_at=refresh.expires_at,
        )
