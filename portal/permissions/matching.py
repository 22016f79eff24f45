"""
Permission matching over dot-segmented resources.

A granted permission ``(granted_resource, granted_action)`` covers a request
``(resource, action)`` when the action matches (``manage`` covers every
action) and the granted resource is one of:

- the requested resource itself (``leads.own`` covers ``leads.own``),
- a dot ancestor of it (``leads`` covers ``leads.own``),
- a ``.all`` wildcard whose base is a string prefix of it
  (``leads.all`` covers ``leads.own``),
- the root wildcard ``*``.

Matching never goes upward: ``bookings.own`` does not cover ``bookings.all``.
"""

from enum import Enum
from functools import lru_cache
from typing import Iterable

ROOT_WILDCARD = "*"
WILDCARD_SUFFIX = ".all"


class PermissionAction(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"
    MANAGE = "manage"  # full access


VALID_ACTIONS = frozenset(a.value for a in PermissionAction)


def action_value(action) -> str:
    return action.value if isinstance(action, PermissionAction) else str(action)


def permission_name(resource: str, action) -> str:
    return f"{resource}.{action_value(action)}"


def parse_permission_name(name: str) -> tuple[str, str]:
    """Split "bookings.own.create" into ("bookings.own", "create"). The last segment is the action."""
    parts = name.split(".")
    if len(parts) < 2 or not all(parts):
        raise ValueError(f"Invalid permission name format: {name}")
    action = parts[-1]
    if action not in VALID_ACTIONS:
        raise ValueError(f"Invalid permission action '{action}' in {name}")
    return ".".join(parts[:-1]), action


def action_matches(granted_action, action) -> bool:
    granted = action_value(granted_action)
    return granted == action_value(action) or granted == PermissionAction.MANAGE.value


def resource_matches(granted_resource: str, resource: str) -> bool:
    if granted_resource == ROOT_WILDCARD or granted_resource == resource:
        return True
    if resource.startswith(granted_resource + "."):
        return True
    if granted_resource.endswith(WILDCARD_SUFFIX):
        base = granted_resource[: -len(WILDCARD_SUFFIX)]
        return resource.startswith(base)
    return False


def permission_matches(granted_resource: str, granted_action, resource: str, action) -> bool:
    return action_matches(granted_action, action) and resource_matches(granted_resource, resource)


class _Node:
    __slots__ = ("children", "actions")

    def __init__(self):
        self.children: dict[str, "_Node"] = {}
        self.actions: set[str] = set()


class ResourceTree:
    """
    Compiled permission set of one role.

    Plain and ancestor grants live in a trie keyed by resource segment, so a
    lookup walks the requested resource once. ``.all`` grants are kept as
    (base, action) pairs because their base matches as a string prefix,
    not per segment.
    """

    def __init__(self, permissions: Iterable[tuple[str, str]] = ()):
        self._root = _Node()
        self._root_actions: set[str] = set()
        self._wildcards: list[tuple[str, str]] = []
        self._size = 0
        for resource, action in permissions:
            self.add(resource, action)

    def add(self, resource: str, action) -> None:
        action = action_value(action)
        self._size += 1
        if resource == ROOT_WILDCARD:
            self._root_actions.add(action)
            return
        if resource.endswith(WILDCARD_SUFFIX):
            self._wildcards.append((resource[: -len(WILDCARD_SUFFIX)], action))

        node = self._root
        for segment in resource.split("."):
            node = node.children.setdefault(segment, _Node())
        node.actions.add(action)

    def allows(self, resource: str, action) -> bool:
        wanted = {action_value(action), PermissionAction.MANAGE.value}

        if self._root_actions & wanted:
            return True

        # Exact resource or any dot ancestor
        node = self._root
        for segment in resource.split("."):
            node = node.children.get(segment)
            if node is None:
                break
            if node.actions & wanted:
                return True

        for base, granted_action in self._wildcards:
            if granted_action in wanted and resource.startswith(base):
                return True

        return False

    def __len__(self) -> int:
        return self._size


@lru_cache(maxsize=128)
def compile_tree(permissions: frozenset) -> ResourceTree:
    """Compiled trees are immutable after construction, so identical permission sets share one"""
    return ResourceTree(permissions)
