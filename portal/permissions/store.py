"""Sources of role permissions and per-user overrides consulted by the resolver"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..cache import Cache, role_permissions_key
from ..config import PERMISSION_CACHE_TTL_SECONDS
from ..models import Permission, Role, UserPermission

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PermissionOverride:
    resource: str
    action: str
    is_granted: bool
    expires_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class StaticPermissionStore:
    """In-memory store: role -> [(resource, action)], user -> [PermissionOverride]"""

    def __init__(
        self,
        role_permissions: Optional[dict[str, list[tuple[str, str]]]] = None,
        overrides: Optional[dict[str, list[PermissionOverride]]] = None,
    ):
        self._role_permissions = role_permissions or {}
        self._overrides = overrides or {}

    def role_permissions(self, role: str) -> list[tuple[str, str]]:
        return list(self._role_permissions.get(role, []))

    def user_overrides(self, user_id: str) -> list[PermissionOverride]:
        return list(self._overrides.get(user_id, []))


class SQLPermissionStore:
    """
    Reads committed role permissions and overrides from the database.

    Role permission lists may be served from Redis for up to
    PERMISSION_CACHE_TTL_SECONDS; every write to a role's permissions deletes
    its cache key. Overrides are always read live.
    """

    def __init__(self, db: Session, cache: Optional[Cache] = None, ttl: int = PERMISSION_CACHE_TTL_SECONDS):
        self.db = db
        self.cache = cache
        self.ttl = ttl

    def role_permissions(self, role: str) -> list[tuple[str, str]]:
        key = role_permissions_key(role)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return [tuple(p) for p in cached]

        rows = (
            self.db.query(Permission.resource, Permission.action)
            .join(Permission.roles)
            .filter(Role.name == role, Role.is_active.is_(True), Permission.is_active.is_(True))
            .all()
        )
        permissions = [(resource, action) for resource, action in rows]

        if self.cache is not None:
            self.cache.set(key, [list(p) for p in permissions], ttl=self.ttl)
        return permissions

    def user_overrides(self, user_id: str) -> list[PermissionOverride]:
        rows = (
            self.db.query(UserPermission, Permission)
            .join(Permission, UserPermission.permission_id == Permission.id)
            .filter(UserPermission.user_id == user_id, Permission.is_active.is_(True))
            .all()
        )
        return [
            PermissionOverride(
                resource=permission.resource,
                action=permission.action,
                is_granted=override.is_granted,
                expires_at=override.expires_at,
            )
            for override, permission in rows
        ]

    def invalidate_role(self, role: str) -> None:
        if self.cache is not None:
            self.cache.delete(role_permissions_key(role))
