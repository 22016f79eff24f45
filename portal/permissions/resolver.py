"""
Permission resolution: can principal P perform action A on resource R?

1. Direct per-user overrides for exactly (R, A) or (R, manage) decide first,
   when not expired. A denial beats everything, a grant beats absence.
2. Otherwise the principal's role permissions are evaluated with hierarchical
   resource matching (see ``matching``).

``resolve`` is a predicate and never raises. Failure to load permissions is
logged and resolves to False.
"""

import logging
from typing import Optional

from ..clock import Clock, utcnow
from ..errors import PermissionDenied
from ..principal import Principal
from .matching import PermissionAction, action_value, compile_tree, permission_name

logger = logging.getLogger(__name__)


class PermissionResolver:
    def __init__(self, store, clock: Optional[Clock] = None):
        self.store = store
        self._clock = clock or utcnow

    def _override_decision(self, principal: Principal, resource: str, action: str) -> Optional[bool]:
        now = self._clock()
        decision = None
        for override in self.store.user_overrides(principal.user_id):
            if override.resource != resource:
                continue
            if override.action not in (action, PermissionAction.MANAGE.value):
                continue
            if override.is_expired(now):
                continue
            if not override.is_granted:
                return False
            decision = True
        return decision

    def resolve(self, principal: Principal, resource: str, action) -> bool:
        action = action_value(action)
        try:
            decision = self._override_decision(principal, resource, action)
            if decision is not None:
                logger.debug(
                    f"Override decided {permission_name(resource, action)} for {principal.user_id}: {decision}"
                )
                return decision

            tree = compile_tree(frozenset(self.store.role_permissions(principal.role)))
            return tree.allows(resource, action)
        except Exception as e:
            logger.error(
                f"❌ Permission check failed for {principal.user_id} on "
                f"{permission_name(resource, action)}: {e}"
            )
            return False

    def require(self, principal: Principal, resource: str, action) -> None:
        """Raise PermissionDenied unless resolve() grants access"""
        if not self.resolve(principal, resource, action):
            logger.warning(
                f"🚫 {principal.user_id} ({principal.role}) denied {permission_name(resource, action)}"
            )
            raise PermissionDenied(resource, action_value(action))

    def effective_permissions(self, principal: Principal) -> dict:
        """Role permissions plus the overrides currently in force"""
        now = self._clock()
        role_permissions = sorted(
            permission_name(resource, action)
            for resource, action in self.store.role_permissions(principal.role)
        )
        granted, denied = [], []
        for override in self.store.user_overrides(principal.user_id):
            if override.is_expired(now):
                continue
            name = permission_name(override.resource, override.action)
            (granted if override.is_granted else denied).append(name)
        return {
            "role": principal.role,
            "role_permissions": role_permissions,
            "granted": sorted(granted),
            "denied": sorted(denied),
        }
