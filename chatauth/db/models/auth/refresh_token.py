# chatauth/db/models/auth/refresh_token.py
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

from ....utils import utcnow


class RefreshToken(SQLModel, table=True):
    __tablename__ = "refresh_tokens"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, max_length=36)
    token: str = Field(max_length=1024, unique=True, index=True)
    user_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    expires_at: datetime = Field(index=True)
    is_revoked: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
