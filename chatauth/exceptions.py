import logging
from typing import Any, Dict, Iterable, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ChatAuthError(Exception):
    """Base class for every error the API reports to clients.

    ``message`` is safe to show to the caller, ``code`` is the stable
    machine-readable kind that clients and tests match on.
    """

    status_code: int = 400
    code: str = "BAD_REQUEST"
    message: str = "Bad request"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message or self.message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        self.headers = headers
        super().__init__(self.message)


class ValidationError(ChatAuthError):
    code = "VALIDATION_ERROR"
    message = "Invalid request"


class RateLimitExceededError(ChatAuthError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"
    message = "Too many requests. Please try again later."

    def __init__(self, message: Optional[str] = None, *, retry_after: Optional[int] = None, **kwargs):
        if retry_after is not None:
            headers = dict(kwargs.pop("headers", None) or {})
            headers["Retry-After"] = str(retry_after)
            kwargs["headers"] = headers
        self.retry_after = retry_after
        super().__init__(message, **kwargs)


class InvalidOrExpiredCodeError(ChatAuthError):
    code = "INVALID_OR_EXPIRED_CODE"
    message = "Invalid or expired verification code"


class InvalidCredentialsError(ChatAuthError):
    code = "INVALID_CREDENTIALS"
    message = "Invalid phone number or password"


class PasswordNotSetError(ChatAuthError):
    code = "PASSWORD_NOT_SET"
    message = "Password not set. Please use SMS verification to login"


class UserNotFoundError(ChatAuthError):
    status_code = 404
    code = "USER_NOT_FOUND"
    message = "User not found"


class InvalidOrExpiredTokenError(ChatAuthError):
    status_code = 401
    code = "INVALID_OR_EXPIRED_TOKEN"
    message = "Invalid or expired refresh token"


class TokenRevokedOrNotFoundError(ChatAuthError):
    status_code = 401
    code = "TOKEN_REVOKED"
    message = "Refresh token not found or has been revoked"


class AuthenticationRequiredError(ChatAuthError):
    """401 raised by the session gate; ``code`` tells the client why."""

    status_code = 401
    code = "NO_TOKEN"
    message = "Authentication required"


class SuspendedError(ChatAuthError):
    status_code = 403
    code = "ACCOUNT_SUSPENDED"
    message = "Your account has been suspended. Please contact support."


class ForbiddenError(ChatAuthError):
    status_code = 403
    code = "FORBIDDEN"
    message = "Access denied"

    @classmethod
    def for_roles(cls, roles: Iterable[str]) -> "ForbiddenError":
        names = [getattr(r, "value", r) for r in roles]
        return cls(f"Access denied. Required roles: {' or '.join(names)}", details={"required_roles": names})


class SelfActionError(ChatAuthError):
    status_code = 403
    code = "SELF_ACTION_FORBIDDEN"
    message = "You cannot perform this action on your own account"


class ProtectedTargetError(ChatAuthError):
    status_code = 403
    code = "PROTECTED_TARGET"
    message = "This action is not allowed on admin users"


class ConflictError(ChatAuthError):
    status_code = 409
    code = "CONFLICT"
    message = "Resource already exists"


class SmsDispatchError(ChatAuthError):
    """SMS provider failure, already mapped to a message safe for the caller."""

    code = "SMS_FAILED"
    message = "Failed to send verification code. Please try again later."


class UpstreamDispatchError(ChatAuthError):
    status_code = 502
    code = "UPSTREAM_ERROR"
    message = "The assistant is temporarily unavailable. Please try again later."


def create_error_response(error_message: str, code: Optional[str] = None) -> dict:
    """Create a standardized error response"""
    body = {
        "success": False,
        "data": None,
        "error": error_message,
    }
    if code:
        body["code"] = code
    return body


async def chatauth_exception_handler(request: Request, exc: ChatAuthError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.message, exc.code),
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are reported as 400 with the first readable message."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        message = str(first.get("msg", message))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        elif first.get("loc"):
            field = first["loc"][-1]
            message = f"{field}: {message}"
    return JSONResponse(
        status_code=400,
        content=create_error_response(message, ValidationError.code),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    # Convert 403 from HTTPBearer to 401 for missing authentication
    if exc.status_code == 403 and "Not authenticated" in str(exc.detail):
        return JSONResponse(
            status_code=401,
            content=create_error_response("Authentication required", AuthenticationRequiredError.code)
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )
