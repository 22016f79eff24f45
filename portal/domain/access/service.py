"""Permission administration - Role permission sets and per-user overrides"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import Cache
from ...clock import utcnow
from ...errors import InvalidPermissionName, RoleNotFound, UserNotFound
from ...models import Permission, Role, User, UserPermission
from ...permissions import PermissionResolver, SQLPermissionStore, parse_permission_name, permission_name
from ...permissions.defaults import PERMISSION_DESCRIPTIONS
from ...permissions.matching import action_value
from ...principal import Principal

logger = logging.getLogger(__name__)


def _parse(name: str) -> tuple[str, str]:
    try:
        return parse_permission_name(name)
    except ValueError as e:
        raise InvalidPermissionName(str(e)) from e


class PermissionService:
    """Service layer for permission administration"""

    def __init__(self, db: Session, cache: Optional[Cache] = None):
        self.db = db
        self.store = SQLPermissionStore(db, cache=cache)
        self.resolver = PermissionResolver(self.store)

    def get_or_create_permission(self, resource: str, action) -> Permission:
        name = permission_name(resource, action)
        # Validates the action segment
        resource, action = _parse(name)

        permission = self.db.query(Permission).filter(Permission.name == name).first()
        if permission is None:
            permission = Permission(
                name=name,
                resource=resource,
                action=action,
                description=PERMISSION_DESCRIPTIONS.get(name),
            )
            self.db.add(permission)
            self.db.flush()
            logger.info(f"➕ Created permission {name}")
        return permission

    def grant_user_permission(
        self,
        user_id: str,
        resource: str,
        action,
        is_granted: bool = True,
        granted_by: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        reason: Optional[str] = None,
    ) -> UserPermission:
        """Create or replace the user's override for (resource, action). is_granted=False records a denial."""
        if self.db.get(User, user_id) is None:
            raise UserNotFound()

        permission = self.get_or_create_permission(resource, action)
        override = (
            self.db.query(UserPermission)
            .filter(UserPermission.user_id == user_id, UserPermission.permission_id == permission.id)
            .first()
        )
        if override is None:
            override = UserPermission(user_id=user_id, permission_id=permission.id)
            self.db.add(override)

        override.is_granted = is_granted
        override.granted_by = granted_by
        override.granted_at = utcnow()
        override.expires_at = expires_at
        override.reason = reason
        self.db.commit()
        self.db.refresh(override)

        verb = "granted" if is_granted else "denied"
        logger.info(f"🔐 {permission.name} {verb} for user {user_id} by {granted_by}")
        return override

    def remove_user_permission(self, user_id: str, name: str) -> bool:
        _parse(name)
        override = (
            self.db.query(UserPermission)
            .join(Permission, UserPermission.permission_id == Permission.id)
            .filter(UserPermission.user_id == user_id, Permission.name == name)
            .first()
        )
        if override is None:
            return False
        self.db.delete(override)
        self.db.commit()
        logger.info(f"🗑️ Removed override {name} for user {user_id}")
        return True

    def list_user_permissions(self, user_id: str) -> list[tuple[UserPermission, Permission]]:
        if self.db.get(User, user_id) is None:
            raise UserNotFound()
        return (
            self.db.query(UserPermission, Permission)
            .join(Permission, UserPermission.permission_id == Permission.id)
            .filter(UserPermission.user_id == user_id)
            .order_by(Permission.name)
            .all()
        )

    def list_roles(self) -> list[Role]:
        return self.db.query(Role).order_by(Role.sort_order).all()

    def set_role_permissions(self, role_name: str, names: list[str]) -> Role:
        """Replace the role's permission set and drop its cached copy"""
        role = self.db.query(Role).filter(Role.name == role_name).first()
        if role is None:
            raise RoleNotFound()

        permissions = []
        for name in dict.fromkeys(names):
            resource, action = _parse(name)
            permissions.append(self.get_or_create_permission(resource, action))

        role.permissions = permissions
        self.db.commit()
        self.store.invalidate_role(role_name)
        logger.info(f"🔐 Role {role_name} now has {len(permissions)} permissions")
        return role

    def check_permission(self, principal: Principal, resource: str, action) -> bool:
        return self.resolver.resolve(principal, resource, action_value(action))

    def effective_permissions(self, principal: Principal) -> dict:
        return self.resolver.effective_permissions(principal)
