import json
import logging
from typing import Optional, Dict, Any, List, Tuple

from sqlmodel import Session, func, select

from .....db.models import AuditLogEntry
from .....application.ports.audit_logger import AuditLogger, AuditLogReader, AuditRecord
from .....utils import hash_phone_number

logger = logging.getLogger(__name__)


class SqlAuditLogger(AuditLogger, AuditLogReader):
    """Appends audit entries to the audit_logs table and reads them back for admins."""

    def __init__(self, session: Session):
        self.session = session

    def log(self, action: str, resource: str = "auth", actor_id: Optional[str] = None, target_id: Optional[str] = None, phone: Optional[str] = None, success: bool = True, details: Optional[Dict[str, Any]] = None, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> None:
        payload = dict(details or {})
        if phone:
            payload["phone_hash"] = hash_phone_number(phone)
        if not success:
            payload["success"] = False
        entry = AuditLogEntry(
            actor_id=actor_id,
            target_id=target_id,
            action=action,
            resource=resource,
            details=json.dumps(payload, default=str) if payload else None,
            ip_address=ip_address,
            user_agent=(user_agent or None) and user_agent[:500],
        )
        self.session.add(entry)
        self.session.commit()
        logger.debug(f"Audit entry {action} by {actor_id} on {target_id}")

    def query(self, actor_id: Optional[str] = None, target_id: Optional[str] = None, action: Optional[str] = None, resource: Optional[str] = None, limit: int = 50, offset: int = 0) -> Tuple[List[AuditRecord], int]:
        filters = []
        if actor_id:
            filters.append(AuditLogEntry.actor_id == actor_id)
        if target_id:
            filters.append(AuditLogEntry.target_id == target_id)
        if action:
            filters.append(AuditLogEntry.action == action)
        if resource:
            filters.append(AuditLogEntry.resource == resource)

        total = self.session.exec(select(func.count()).select_from(AuditLogEntry).where(*filters)).one()
        rows = self.session.exec(
            select(AuditLogEntry)
            .where(*filters)
            .order_by(AuditLogEntry.created_at.desc())
            .offset(offset)
            .limit(limit)
        ).all()
        return [self._to_record(row) for row in rows], total

    @staticmethod
    def _to_record(entry: AuditLogEntry) -> AuditRecord:
        return AuditRecord(
            id=entry.id,
            action=entry.action,
            resource=entry.resource,
            actor_id=entry.actor_id,
            target_id=entry.target_id,
            details=json.loads(entry.details) if entry.details else None,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            created_at=entry.created_at,
        )
