import logging
from functools import lru_cache
from typing import Dict, Optional

from fastapi import Depends, Header, Request, Response
from sqlmodel import Session

from .core.config import settings
from .database import get_session
from .db.models.users.user import Role
from .application.ports.rate_limiter import RateLimiter, RateLimitDecision
from .application.services.auth_service import AuthService
from .application.services.chat_service import ChatService
from .application.services.permissions import AUTHENTICATED_ROLES, MODERATOR_ROLES, check_role
from .application.services.rate_limit_service import RateLimitService, chat_tiers
from .application.services.session_gate import AuthenticatedUser, SessionGate
from .application.services.token_issuer import TokenIssuer
from .application.services.user_admin_service import UserAdminService
from .infrastructure.ai.gemini_provider import GeminiChatProvider
from .infrastructure.audit.std_logger import StdAuditLogger
from .infrastructure.persistence.sqlalchemy.repositories.audit_log_repository_sql import SqlAuditLogger
from .infrastructure.persistence.sqlalchemy.repositories.refresh_token_repository_sql import SqlRefreshTokenRepository
from .infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from .infrastructure.persistence.sqlalchemy.repositories.verification_code_repository_sql import SqlVerificationCodeRepository
from .infrastructure.rate_limit.redis_rate_limiter import RedisRateLimiter
from .infrastructure.rate_limit.sql_rate_limiter import SqlRateLimiter
from .infrastructure.security.bcrypt_hasher import BcryptPasswordHasher
from .infrastructure.sms.console_provider import ConsoleSmsProvider
from .infrastructure.sms.twilio_provider import TwilioSmsProvider

logger = logging.getLogger(__name__)


# Process-wide collaborators

@lru_cache()
def get_token_issuer() -> TokenIssuer:
    return TokenIssuer.from_settings(settings)


@lru_cache()
def get_password_hasher() -> BcryptPasswordHasher:
    return BcryptPasswordHasher(rounds=settings.PASSWORD_HASH_ROUNDS)


@lru_cache()
def get_sms_provider():
    if settings.twilio_configured or settings.is_production:
        return TwilioSmsProvider()
    logger.warning("Twilio is not configured; verification codes will be written to the log")
    return ConsoleSmsProvider()


@lru_cache()
def get_chat_provider() -> GeminiChatProvider:
    return GeminiChatProvider()


@lru_cache()
def get_audit_logger() -> StdAuditLogger:
    return StdAuditLogger()


@lru_cache()
def _redis_rate_limiter(url: str) -> RedisRateLimiter:
    return RedisRateLimiter(url)


# Request-scoped repositories and services

def get_user_repo(session: Session = Depends(get_session)) -> SqlUserRepository:
    return SqlUserRepository(session)


def get_code_repo(session: Session = Depends(get_session)) -> SqlVerificationCodeRepository:
    return SqlVerificationCodeRepository(session, timeout_minutes=settings.SMS_CODE_TIMEOUT_MINUTES)


def get_refresh_repo(session: Session = Depends(get_session)) -> SqlRefreshTokenRepository:
    return SqlRefreshTokenRepository(session)


def get_rate_limiter(session: Session = Depends(get_session)) -> RateLimiter:
    if settings.REDIS_URL:
        return _redis_rate_limiter(settings.REDIS_URL)
    return SqlRateLimiter(session)


def get_rate_limit_service(limiter: RateLimiter = Depends(get_rate_limiter)) -> RateLimitService:
    return RateLimitService(limiter=limiter)


def get_auth_service(
    user_repo: SqlUserRepository = Depends(get_user_repo),
    code_repo: SqlVerificationCodeRepository = Depends(get_code_repo),
    refresh_repo: SqlRefreshTokenRepository = Depends(get_refresh_repo),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
    sms_provider=Depends(get_sms_provider),
    password_hasher: BcryptPasswordHasher = Depends(get_password_hasher),
    audit_logger: StdAuditLogger = Depends(get_audit_logger),
) -> AuthService:
    return AuthService(
        user_repo=user_repo,
        code_repo=code_repo,
        refresh_repo=refresh_repo,
        token_issuer=token_issuer,
        sms_provider=sms_provider,
        password_hasher=password_hasher,
        audit_logger=audit_logger,
        environment=settings.ENVIRONMENT,
        codes_per_hour=settings.SMS_CODES_PER_HOUR,
    )


def get_user_admin_service(
    session: Session = Depends(get_session),
    user_repo: SqlUserRepository = Depends(get_user_repo),
    refresh_repo: SqlRefreshTokenRepository = Depends(get_refresh_repo),
) -> UserAdminService:
    audit = SqlAuditLogger(session)
    return UserAdminService(user_repo=user_repo, refresh_repo=refresh_repo, audit_logger=audit, audit_reader=audit)


def get_chat_service(provider=Depends(get_chat_provider)) -> ChatService:
    return ChatService(provider=provider)


def get_session_gate(
    user_repo: SqlUserRepository = Depends(get_user_repo),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> SessionGate:
    return SessionGate(
        user_repo=user_repo,
        token_issuer=token_issuer,
        requires_auth=settings.REQUIRES_AUTH,
        environment=settings.ENVIRONMENT,
    )


# Authentication and authorization gates

def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    gate: SessionGate = Depends(get_session_gate),
) -> AuthenticatedUser:
    user = gate.authenticate(authorization)
    request.state.user = user
    return user


def require_role(*roles: Role):
    def _require(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
        check_role(user, roles)
        return user
    return _require


require_admin = require_role(Role.ADMIN)
require_moderator = require_role(*MODERATOR_ROLES)
require_authenticated_user = require_role(*AUTHENTICATED_ROLES)


def chat_rate_limit(
    response: Response,
    user: AuthenticatedUser = Depends(require_authenticated_user),
    rate_limits: RateLimitService = Depends(get_rate_limit_service),
) -> Dict[str, RateLimitDecision]:
    decisions = rate_limits.check(
        "chat",
        user.id,
        chat_tiers(settings.CHAT_RATE_LIMIT_PER_MINUTE, settings.CHAT_RATE_LIMIT_PER_HOUR),
    )
    if "minute" in decisions:
        response.headers["X-RateLimit-Limit-Minute"] = str(settings.CHAT_RATE_LIMIT_PER_MINUTE)
        response.headers["X-RateLimit-Remaining-Minute"] = str(decisions["minute"].remaining)
    if "hour" in decisions:
        response.headers["X-RateLimit-Limit-Hour"] = str(settings.CHAT_RATE_LIMIT_PER_HOUR)
        response.headers["X-RateLimit-Remaining-Hour"] = str(decisions["hour"].remaining)
    return decisions


def client_context(request: Request) -> Dict[str, Optional[str]]:
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }
