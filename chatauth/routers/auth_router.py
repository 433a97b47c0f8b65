import logging

from fastapi import APIRouter, Depends

from ..core.config import settings
from ..application.services.auth_service import AuthService, AuthResult
from ..application.services.rate_limit_service import RateLimitService, RateLimitTier
from ..dependencies import get_auth_service, get_rate_limit_service
from ..schemas.auth.auth import (
    AuthResponse,
    LoginWithCodeRequest,
    LoginWithPasswordRequest,
    RefreshResponse,
    RefreshTokenRequest,
    SendCodeRequest,
    SetPasswordRequest,
)
from ..schemas.common.common import MessageResponse
from ..schemas.users.user import UserPublic

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{settings.API_PREFIX}/auth", tags=["Authentication"])

CODE_SEND_LIMIT_MESSAGE = "Too many verification codes requested. Please try again later."


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        user=UserPublic.from_user(result.user),
    )


@router.post("/send-code", response_model=MessageResponse)
def send_code(
    body: SendCodeRequest,
    auth: AuthService = Depends(get_auth_service),
    rate_limits: RateLimitService = Depends(get_rate_limit_service),
):
    if not settings.is_development:
        rate_limits.check(
            "sms",
            body.phone,
            [RateLimitTier("hour", settings.SMS_SEND_RATE_LIMIT_PER_HOUR, 3600)],
            status_code=400,
            message=CODE_SEND_LIMIT_MESSAGE,
        )
    return MessageResponse(**auth.send_verification_code(body.phone))


@router.post("/login-with-code", response_model=AuthResponse)
def login_with_code(body: LoginWithCodeRequest, auth: AuthService = Depends(get_auth_service)):
    result = auth.login_with_code(body.phone, body.code, single_device_mode=body.single_device_mode)
    return _auth_response(result)


@router.post("/login-with-password", response_model=AuthResponse)
def login_with_password(body: LoginWithPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    result = auth.login_with_password(body.phone, body.password, single_device_mode=body.single_device_mode)
    return _auth_response(result)


@router.post("/set-password", response_model=MessageResponse)
def set_password(body: SetPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    return MessageResponse(**auth.set_password(body.phone, body.code, body.password))


@router.post("/refresh", response_model=RefreshResponse)
def refresh(body: RefreshTokenRequest, auth: AuthService = Depends(get_auth_service)):
    result = auth.refresh_access_token(body.refresh_token)
    return RefreshResponse(access_token=result.access_token, user=UserPublic.from_user(result.user))


@router.post("/logout", response_model=MessageResponse)
def logout(body: RefreshTokenRequest, auth: AuthService = Depends(get_auth_service)):
    return MessageResponse(**auth.revoke_refresh_token(body.refresh_token))
