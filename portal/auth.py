"""
Request authentication and authorization dependencies.

The bearer token is taken from the Authorization header (the "Bearer " prefix
is matched case-sensitively), validated against the token service including
the revocation list, and the resulting principal is attached to
``request.state.principal`` for downstream handlers.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .database import get_db
from .errors import AuthenticationError, InvalidAuthHeader, MissingCredentials, PermissionDenied
from .permissions import PermissionResolver, SQLPermissionStore
from .permissions.matching import action_value
from .principal import Principal
from .tokens import TokenService

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise MissingCredentials()
    if not authorization.startswith(BEARER_PREFIX):
        raise InvalidAuthHeader()
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise InvalidAuthHeader()
    return token


def authenticate(authorization: Optional[str], token_service: TokenService) -> Principal:
    """Turn a raw Authorization header into a principal or raise an AuthenticationError"""
    token = extract_bearer_token(authorization)
    claims = token_service.validate_with_revocation(token)
    return Principal.from_claims(claims)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_permission_resolver(request: Request, db: Session = Depends(get_db)) -> PermissionResolver:
    cache = getattr(request.app.state, "permission_cache", None)
    return PermissionResolver(SQLPermissionStore(db, cache=cache))


async def get_current_principal(
    request: Request,
    token_service: TokenService = Depends(get_token_service),
) -> Principal:
    """Authenticated principal for this request"""
    try:
        principal = authenticate(request.headers.get("Authorization"), token_service)
    except AuthenticationError as e:
        logger.warning(f"⚠️ Authentication failed for {request.url.path}: {e.code}")
        raise

    request.state.principal = principal
    logger.debug(f"✅ Authenticated {principal.user_id} ({principal.role})")
    return principal


async def get_optional_principal(
    request: Request,
    token_service: TokenService = Depends(get_token_service),
) -> Optional[Principal]:
    """Principal if a valid token is present, otherwise None. Never rejects the request."""
    authorization = request.headers.get("Authorization")
    if not authorization:
        return None
    try:
        principal = authenticate(authorization, token_service)
    except AuthenticationError:
        return None
    request.state.principal = principal
    return principal


def require_permission(resource: str, action):
    """
    Create a dependency that rejects the request unless the principal may
    perform ``action`` on ``resource``.

    The check reads the database, so it is a plain function and runs in the
    threadpool; waiting on a locked SQLite file never blocks the event loop.

    Example usage:
        @router.post("/timeslots")
        def create_timeslot(
            principal: Principal = Depends(require_permission("timeslots.own", "create")),
        ):
            ...
    """
    action = action_value(action)

    def permission_dependency(
        principal: Principal = Depends(get_current_principal),
        resolver: PermissionResolver = Depends(get_permission_resolver),
        db: Session = Depends(get_db),
    ) -> Principal:
        try:
            resolver.require(principal, resource, action)
        finally:
            # End the read transaction; on SQLite it holds the write lock
            db.rollback()
        return principal

    return permission_dependency


def require_roles(*roles: str):
    """Create a dependency that only admits the listed roles"""

    async def role_dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in roles:
            logger.warning(f"🚫 Role {principal.role} not in {roles}")
            raise PermissionDenied()
        return principal

    return role_dependency
