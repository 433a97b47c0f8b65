from datetime import datetime
from typing import Any, Dict, List, Optional

from ..common.common import CamelModel


class AuditLogOut(CamelModel):
    id: str
    action: str
    resource: str
    actor_id: Optional[str] = None
    target_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime


class AuditLogPage(CamelModel):
    logs: List[AuditLogOut]
    total: int
    limit: int
    offset: int
