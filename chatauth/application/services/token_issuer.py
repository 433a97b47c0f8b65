import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

import jwt

from ..ports.user_repo import UserDto
from ...core.config import Settings, settings as default_settings
from ...exceptions import AuthenticationRequiredError, InvalidOrExpiredTokenError
from ...utils import utcnow


@dataclass
class IssuedToken:
    token: str
    expires_at: datetime


class TokenIssuer:
    """Mints and checks signed tokens. Knows nothing about storage.

    Access and refresh tokens are signed with different secrets, so one can
    never be replayed as the other even if the ``type`` claim were ignored.
    """

    def __init__(self, access_secret: str, refresh_secret: str, access_ttl: timedelta, refresh_ttl: timedelta, algorithm: str = "HS256", clock: Callable[[], datetime] = utcnow):
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.algorithm = algorithm
        self._clock = clock

    @classmethod
    def from_settings(cls, s: Optional[Settings] = None) -> "TokenIssuer":
        s = s or default_settings
        return cls(
            access_secret=s.JWT_PRIVATE_KEY,
            refresh_secret=s.JWT_REFRESH_SECRET,
            access_ttl=s.access_token_ttl,
            refresh_ttl=s.refresh_token_ttl,
            algorithm=s.ALGORITHM,
        )

    def issue_access_token(self, user: UserDto) -> IssuedToken:
        now = self._clock()
        expires_at = now + self.access_ttl
        claims = {
            "sub": user.id,
            "id": user.id,
            "phone": user.phone,
            "name": user.name,
            "role": user.role.value,
            "isAdmin": user.is_admin,
            "type": "access",
            "iat": now,
            "exp": expires_at,
        }
        return IssuedToken(jwt.encode(claims, self.access_secret, algorithm=self.algorithm), expires_at)

    def issue_refresh_token(self, user_id: str) -> IssuedToken:
        now = self._clock()
        expires_at = now + self.refresh_ttl
        claims = {
            "sub": user_id,
            "id": user_id,
            "type": "refresh",
            # Keeps tokens minted in the same second for one user distinct
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": expires_at,
        }
        return IssuedToken(jwt.encode(claims, self.refresh_secret, algorithm=self.algorithm), expires_at)

    def verify_refresh_token(self, token: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, self.refresh_secret, algorithms=[self.algorithm])
        except jwt.InvalidTokenError:
            raise InvalidOrExpiredTokenError()
        if payload.get("type") != "refresh" or not payload.get("sub"):
            raise InvalidOrExpiredTokenError()
        return payload

    def verify_access_token(self, token: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, self.access_secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationRequiredError("Token has expired", code="TOKEN_EXPIRED")
        except jwt.InvalidTokenError:
            raise AuthenticationRequiredError("Invalid token", code="INVALID_TOKEN")
        if payload.get("type") != "access" or not payload.get("sub"):
            raise AuthenticationRequiredError("Invalid token", code="INVALID_TOKEN")
        return payload
