import logging
from dataclasses import dataclass
from typing import Optional

from ..ports.user_repo import UserRepository, UserDto
from .token_issuer import TokenIssuer
from ...db.models.users.user import Role
from ...exceptions import AuthenticationRequiredError, SuspendedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    phone: str
    role: Role
    name: Optional[str] = None
    email: Optional[str] = None
    is_suspended: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def from_dto(cls, user: UserDto) -> "AuthenticatedUser":
        return cls(
            id=user.id,
            phone=user.phone,
            role=user.role,
            name=user.name,
            email=user.email,
            is_suspended=user.is_suspended,
        )


# Identity injected when authentication is switched off outside production
DEV_BYPASS_USER = AuthenticatedUser(id="dev-admin", phone="13800000000", role=Role.ADMIN, name="Development Admin")


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.strip():
        raise AuthenticationRequiredError("No token provided", code="NO_TOKEN")
    parts = authorization.strip().split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise AuthenticationRequiredError("Invalid token format. Use: Bearer <token>", code="INVALID_FORMAT")
    return parts[1]


@dataclass
class SessionGate:
    """Turns an Authorization header into the caller's current identity.

    The user row is read on every call, so suspension or a role change takes
    effect on the next request even while old access tokens are still valid.
    """

    user_repo: UserRepository
    token_issuer: TokenIssuer
    requires_auth: bool = True
    environment: str = "development"

    @property
    def bypass_enabled(self) -> bool:
        return not self.requires_auth and self.environment != "production"

    def authenticate(self, authorization: Optional[str]) -> AuthenticatedUser:
        if self.bypass_enabled:
            logger.debug("Authentication bypass active, using development admin")
            return DEV_BYPASS_USER

        token = extract_bearer_token(authorization)
        claims = self.token_issuer.verify_access_token(token)

        user = self.user_repo.get_by_id(claims["sub"])
        if user is None:
            raise AuthenticationRequiredError("User not found", code="USER_NOT_FOUND")
        if user.is_suspended:
            logger.info(f"Rejected request from suspended user {user.id}")
            raise SuspendedError()
        return AuthenticatedUser.from_dto(user)
