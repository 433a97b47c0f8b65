# chatauth/db/models/audit/audit_log.py
from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Optional
import uuid

from ....utils import utcnow


class AuditLogEntry(SQLModel, table=True):
    __tablename__ = "audit_logs"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, max_length=36)
    actor_id: Optional[str] = Field(default=None, index=True, max_length=36)
    target_id: Optional[str] = Field(default=None, index=True, max_length=36)
    action: str = Field(max_length=100, index=True)
    resource: str = Field(max_length=100)
    details: Optional[str] = Field(default=None)  # JSON string
    ip_address: Optional[str] = Field(default=None, max_length=45)
    user_agent: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=utcnow)
