# chatauth/schemas/users/user.py
from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, Field

from ..common.common import CamelModel
from ...db.models.users.user import Role
from ...utils import is_valid_phone


def _check_phone(v: str) -> str:
    v = v.strip()
    if not is_valid_phone(v):
        raise ValueError("Invalid phone number format")
    return v


PhoneNumber = Annotated[str, AfterValidator(_check_phone)]


class UserPublic(CamelModel):
    """Redacted user projection returned by the auth endpoints."""
    id: str
    phone: str
    name: Optional[str] = None
    role: Role
    is_admin: bool

    @classmethod
    def from_user(cls, user) -> "UserPublic":
        return cls(id=user.id, phone=user.phone, name=user.name, role=user.role, is_admin=user.is_admin)


class UserProfile(UserPublic):
    email: Optional[str] = None
    is_suspended: bool = False
    suspended_at: Optional[datetime] = None
    suspended_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user) -> "UserProfile":
        return cls(
            id=user.id,
            phone=user.phone,
            name=user.name,
            role=user.role,
            is_admin=user.is_admin,
            email=user.email,
            is_suspended=user.is_suspended,
            suspended_at=user.suspended_at,
            suspended_reason=user.suspended_reason,
            created_at=user.created_at,
        )


class CreateUserRequest(CamelModel):
    phone: PhoneNumber
    name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=100)
    role: Role = Role.USER


class ChangeRoleRequest(CamelModel):
    role: Role


class SuspendUserRequest(CamelModel):
    reason: Optional[str] = Field(None, max_length=500)
