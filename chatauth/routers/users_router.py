from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query

from ..core.config import settings
from ..application.services.session_gate import AuthenticatedUser
from ..application.services.user_admin_service import UserAdminService
from ..dependencies import (
    client_context,
    get_current_user,
    get_user_admin_service,
    require_admin,
    require_moderator,
)
from ..schemas.audit.audit import AuditLogOut, AuditLogPage
from ..schemas.common.common import MessageResponse
from ..schemas.users.user import ChangeRoleRequest, CreateUserRequest, SuspendUserRequest, UserProfile

router = APIRouter(prefix=f"{settings.API_PREFIX}/users", tags=["Users"])


@router.get("/me", response_model=UserProfile)
def read_me(
    user: AuthenticatedUser = Depends(get_current_user),
    users: UserAdminService = Depends(get_user_admin_service),
):
    return UserProfile.from_user(users.get_profile(user.id))


@router.get("/audit-logs", response_model=AuditLogPage)
def list_audit_logs(
    actor_id: Optional[str] = Query(None, alias="actorId"),
    target_id: Optional[str] = Query(None, alias="targetId"),
    action: Optional[str] = None,
    resource: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    admin: AuthenticatedUser = Depends(require_admin),
    users: UserAdminService = Depends(get_user_admin_service),
):
    records, total = users.list_audit_logs(actor_id=actor_id, target_id=target_id, action=action, resource=resource, limit=limit, offset=offset)
    logs = [AuditLogOut(**vars(r)) for r in records]
    return AuditLogPage(logs=logs, total=total, limit=limit, offset=offset)


@router.post("", response_model=UserProfile, status_code=201)
def create_user(
    body: CreateUserRequest,
    admin: AuthenticatedUser = Depends(require_admin),
    users: UserAdminService = Depends(get_user_admin_service),
    ctx: Dict[str, Optional[str]] = Depends(client_context),
):
    created = users.create_user(admin.id, body.phone, name=body.name, email=body.email, role=body.role, **ctx)
    return UserProfile.from_user(created)


@router.put("/{user_id}/role", response_model=UserProfile)
def change_role(
    user_id: str,
    body: ChangeRoleRequest,
    admin: AuthenticatedUser = Depends(require_admin),
    users: UserAdminService = Depends(get_user_admin_service),
    ctx: Dict[str, Optional[str]] = Depends(client_context),
):
    return UserProfile.from_user(users.change_role(admin.id, user_id, body.role, **ctx))


@router.post("/{user_id}/suspend", response_model=UserProfile)
def suspend_user(
    user_id: str,
    body: Optional[SuspendUserRequest] = None,
    moderator: AuthenticatedUser = Depends(require_moderator),
    users: UserAdminService = Depends(get_user_admin_service),
    ctx: Dict[str, Optional[str]] = Depends(client_context),
):
    reason = body.reason if body else None
    return UserProfile.from_user(users.suspend(moderator.id, user_id, reason=reason, **ctx))


@router.post("/{user_id}/unsuspend", response_model=UserProfile)
def unsuspend_user(
    user_id: str,
    moderator: AuthenticatedUser = Depends(require_moderator),
    users: UserAdminService = Depends(get_user_admin_service),
    ctx: Dict[str, Optional[str]] = Depends(client_context),
):
    return UserProfile.from_user(users.unsuspend(moderator.id, user_id, **ctx))


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    admin: AuthenticatedUser = Depends(require_admin),
    users: UserAdminService = Depends(get_user_admin_service),
    ctx: Dict[str, Optional[str]] = Depends(client_context),
):
    users.delete(admin.id, user_id, **ctx)
    return MessageResponse(message="User deleted successfully")
