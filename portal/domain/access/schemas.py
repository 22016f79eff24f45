"""Permission administration schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PermissionCheckResponse(BaseModel):
    resource: str
    action: str
    allowed: bool


class EffectivePermissionsResponse(BaseModel):
    role: str
    role_permissions: list[str]
    granted: list[str]
    denied: list[str]


class UserPermissionGrant(BaseModel):
    """Grant (is_granted=true) or deny (is_granted=false) one permission to a user"""

    resource: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1)
    is_granted: bool = True
    expires_at: Optional[datetime] = None
    reason: Optional[str] = None


class UserPermissionResponse(BaseModel):
    name: str
    resource: str
    action: str
    is_granted: bool
    granted_by: Optional[str] = None
    granted_at: datetime
    expires_at: Optional[datetime] = None
    reason: Optional[str] = None
    is_expired: bool


class RolePermissionsUpdate(BaseModel):
    permissions: list[str]


class RoleResponse(BaseModel):
    name: str
    display_name: str
    description: Optional[str] = None
    is_active: bool
    permissions: list[str]
