from .matching import (
    PermissionAction,
    ResourceTree,
    parse_permission_name,
    permission_matches,
    permission_name,
)
from .resolver import PermissionResolver
from .store import PermissionOverride, SQLPermissionStore, StaticPermissionStore

__all__ = [
    "PermissionAction",
    "PermissionOverride",
    "PermissionResolver",
    "ResourceTree",
    "SQLPermissionStore",
    "StaticPermissionStore",
    "parse_permission_name",
    "permission_matches",
    "permission_name",
]
