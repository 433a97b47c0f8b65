from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Dict, Any, List, Protocol, Tuple


@dataclass
class AuditRecord:
    id: str
    action: str
    resource: str
    actor_id: Optional[str]
    target_id: Optional[str]
    details: Optional[Dict[str, Any]]
    ip_address: Optional[str]
    user_agent: Optional[str]
    created_at: datetime


class AuditLogger(Protocol):
    def log(self, action: str, resource: str = "auth", actor_id: Optional[str] = None, target_id: Optional[str] = None, phone: Optional[str] = None, success: bool = True, details: Optional[Dict[str, Any]] = None, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> None:
        ...


class AuditLogReader(Protocol):
    def query(self, actor_id: Optional[str] = None, target_id: Optional[str] = None, action: Optional[str] = None, resource: Optional[str] = None, limit: int = 50, offset: int = 0) -> Tuple[List[AuditRecord], int]:
        """Newest entries first, with the total matching count."""
        ...
