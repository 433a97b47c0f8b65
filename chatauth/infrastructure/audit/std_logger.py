import json
import logging
from typing import Optional, Dict, Any

from ...application.ports.audit_logger import AuditLogger
from ...utils import hash_phone_number, utcnow


class StdAuditLogger(AuditLogger):
    """Writes one JSON ``AUDIT:`` line per event; phone numbers only as hashes."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def log(self, action: str, resource: str = "auth", actor_id: Optional[str] = None, target_id: Optional[str] = None, phone: Optional[str] = None, success: bool = True, details: Optional[Dict[str, Any]] = None, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> None:
        entry = {
            "timestamp": utcnow().isoformat(),
            "action": action,
            "resource": resource,
            "actor_id": actor_id,
            "target_id": target_id,
            "phone_hash": hash_phone_number(phone) if phone else None,
            "ip_address": ip_address,
            "success": success,
            "details": details or {},
        }
        self._logger.info(f"AUDIT: {json.dumps(entry, default=str)}")
