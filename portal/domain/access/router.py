"""Permission router - FastAPI endpoints for checking and administering permissions"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_principal, require_permission
from ...clock import utcnow
from ...database import get_db
from ...principal import Principal
from .schemas import (
    EffectivePermissionsResponse,
    PermissionCheckResponse,
    RolePermissionsUpdate,
    RoleResponse,
    UserPermissionGrant,
    UserPermissionResponse,
)
from .service import PermissionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/permissions", tags=["Permissions"])


def get_permission_service(request: Request, db: Session = Depends(get_db)) -> PermissionService:
    """Dependency injection for PermissionService"""
    return PermissionService(db, cache=getattr(request.app.state, "permission_cache", None))


def _override_response(override, permission) -> UserPermissionResponse:
    return UserPermissionResponse(
        name=permission.name,
        resource=permission.resource,
        action=permission.action,
        is_granted=override.is_granted,
        granted_by=override.granted_by,
        granted_at=override.granted_at,
        expires_at=override.expires_at,
        reason=override.reason,
        is_expired=override.is_expired(utcnow()),
    )


def _role_response(role) -> RoleResponse:
    return RoleResponse(
        name=role.name,
        display_name=role.display_name,
        description=role.description,
        is_active=role.is_active,
        permissions=sorted(p.name for p in role.permissions),
    )


@router.get("/check", response_model=PermissionCheckResponse)
def check_permission(
    resource: str = Query(...),
    action: str = Query(...),
    principal: Principal = Depends(get_current_principal),
    service: PermissionService = Depends(get_permission_service),
):
    """Whether the caller may perform `action` on `resource`"""
    allowed = service.check_permission(principal, resource, action)
    return PermissionCheckResponse(resource=resource, action=action, allowed=allowed)


@router.get("/me", response_model=EffectivePermissionsResponse)
def my_permissions(
    principal: Principal = Depends(get_current_principal),
    service: PermissionService = Depends(get_permission_service),
):
    return service.effective_permissions(principal)


@router.get("/roles", response_model=list[RoleResponse])
def list_roles(
    principal: Principal = Depends(require_permission("permissions", "read")),
    service: PermissionService = Depends(get_permission_service),
):
    return [_role_response(role) for role in service.list_roles()]


@router.put("/roles/{role_name}", response_model=RoleResponse)
def set_role_permissions(
    role_name: str,
    data: RolePermissionsUpdate,
    principal: Principal = Depends(require_permission("permissions", "manage")),
    service: PermissionService = Depends(get_permission_service),
):
    return _role_response(service.set_role_permissions(role_name, data.permissions))


@router.get("/users/{user_id}", response_model=list[UserPermissionResponse])
def list_user_permissions(
    user_id: str,
    principal: Principal = Depends(require_permission("permissions", "read")),
    service: PermissionService = Depends(get_permission_service),
):
    return [_override_response(o, p) for o, p in service.list_user_permissions(user_id)]


@router.post("/users/{user_id}", response_model=UserPermissionResponse)
def grant_user_permission(
    user_id: str,
    data: UserPermissionGrant,
    principal: Principal = Depends(require_permission("permissions", "manage")),
    service: PermissionService = Depends(get_permission_service),
):
    """Set a direct grant or denial for one user. Overrides take precedence over the role."""
    override = service.grant_user_permission(
        user_id,
        data.resource,
        data.action,
        is_granted=data.is_granted,
        granted_by=principal.user_id,
        expires_at=data.expires_at,
        reason=data.reason,
    )
    return _override_response(override, override.permission)


@router.delete("/users/{user_id}/{permission_name}")
def remove_user_permission(
    user_id: str,
    permission_name: str,
    principal: Principal = Depends(require_permission("permissions", "manage")),
    service: PermissionService = Depends(get_permission_service),
):
    removed = service.remove_user_permission(user_id, permission_name)
    return {"removed": removed}
