# chatauth/db/models/users/user.py
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

from ....utils import utcnow


class Role(str, Enum):
    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"
    USER = "USER"
    GUEST = "GUEST"


class User(SQLModel, table=True):
    __tablename__ = "users"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, max_length=36)
    phone: str = Field(max_length=20, unique=True, index=True)
    email: Optional[str] = Field(max_length=100, default=None)
    name: Optional[str] = Field(max_length=100, default=None)
    # Null means the account can only sign in with a verification code
    password_hash: Optional[str] = Field(max_length=255, default=None)
    role: Role = Field(default=Role.USER)
    is_suspended: bool = Field(default=False)
    suspended_at: Optional[datetime] = Field(default=None)
    suspended_reason: Optional[str] = Field(max_length=500, default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
