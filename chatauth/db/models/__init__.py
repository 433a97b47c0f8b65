# Models package (re-export feature modules for stable imports)
from .users.user import User, Role
from .auth.verification_code import VerificationCode
from .auth.refresh_token import RefreshToken
from .auth.rate_limit import RateLimitCounter
from .audit.audit_log import AuditLogEntry

__all__ = [
    "User",
    "Role",
    "VerificationCode",
    "RefreshToken",
    "RateLimitCounter",
    "AuditLogEntry",
]
