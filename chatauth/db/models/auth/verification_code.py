# chatauth/db/models/auth/verification_code.py
from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Optional
import uuid

from ....utils import utcnow


class VerificationCode(SQLModel, table=True):
    __tablename__ = "verification_codes"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, max_length=36)
    phone: str = Field(max_length=20, index=True)
    code: str = Field(max_length=6)
    expires_at: datetime = Field(index=True)
    is_used: bool = Field(default=False)
    user_id: Optional[str] = Field(default=None, foreign_key="users.id", max_length=36)
    created_at: datetime = Field(default_factory=utcnow)
