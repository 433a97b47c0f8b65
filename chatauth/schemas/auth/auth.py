# chatauth/schemas/auth/auth.py
from typing import Annotated

from pydantic import AfterValidator, field_validator

from ..common.common import CamelModel
from ..users.user import UserPublic, PhoneNumber


def _check_code(v: str) -> str:
    if len(v) != 6 or not v.isdigit():
        raise ValueError("Verification code must be 6 digits")
    return v


VerificationCodeStr = Annotated[str, AfterValidator(_check_code)]


class SendCodeRequest(CamelModel):
    phone: PhoneNumber


class LoginWithCodeRequest(CamelModel):
    phone: PhoneNumber
    code: VerificationCodeStr
    single_device_mode: bool = False


class LoginWithPasswordRequest(CamelModel):
    phone: PhoneNumber
    password: str
    single_device_mode: bool = False

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class SetPasswordRequest(CamelModel):
    phone: PhoneNumber
    code: VerificationCodeStr
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 6 or len(v) > 255:
            raise ValueError("Password must be between 6 and 255 characters")
        return v


class RefreshTokenRequest(CamelModel):
    refresh_token: str

    @field_validator("refresh_token")
    @classmethod
    def validate_refresh_token(cls, v: str) -> str:
        if not v:
            raise ValueError("Refresh token is required")
        return v


class AuthResponse(CamelModel):
    access_token: str
    refresh_token: str
    user: UserPublic


class RefreshResponse(CamelModel):
    access_token: str
    user: UserPublic
