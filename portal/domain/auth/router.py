"""Auth router - FastAPI endpoints for login, refresh and logout"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ...auth import extract_bearer_token, get_current_principal, get_optional_principal, get_token_service
from ...database import get_db
from ...principal import Principal
from ...tokens import TokenPair, TokenService
from .schemas import (
    AuthResponse,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
    SessionResponse,
    TokenResponse,
    UserResponse,
)
from .service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def get_auth_service(
    db: Session = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
) -> AuthService:
    """Dependency injection for AuthService"""
    return AuthService(db, token_service)


def _auth_response(user, pair: TokenPair) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(user),
        tokens=TokenResponse(**pair.model_dump()),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    user, pair = service.register(data)
    return _auth_response(user, pair)


@router.post("/login", response_model=AuthResponse)
def login(
    data: LoginRequest,
    request: Request,
    service: AuthService = Depends(get_auth_service),
):
    client_ip = request.client.host if request.client else None
    user, pair = service.login(data.email, data.password, ip_address=client_ip)
    return _auth_response(user, pair)


@router.post("/refresh", response_model=TokenResponse)
def refresh(data: RefreshRequest, service: AuthService = Depends(get_auth_service)):
    _, pair = service.refresh(data.refresh_token)
    return TokenResponse(**pair.model_dump())


@router.post("/logout")
def logout(
    request: Request,
    data: LogoutRequest = LogoutRequest(),
    principal: Principal = Depends(get_current_principal),
    service: AuthService = Depends(get_auth_service),
):
    """Revoke the current access token (and the refresh token, when supplied)"""
    access_token = extract_bearer_token(request.headers.get("Authorization"))
    service.logout(access_token, data.refresh_token)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserResponse)
def me(
    principal: Principal = Depends(get_current_principal),
    service: AuthService = Depends(get_auth_service),
):
    return service.get_user(principal.user_id)


@router.get("/session", response_model=SessionResponse)
async def session(principal: Optional[Principal] = Depends(get_optional_principal)):
    """Whether the caller holds a valid access token. Never responds 401."""
    if principal is None:
        return SessionResponse(authenticated=False)
    return SessionResponse(authenticated=True, user_id=principal.user_id, role=principal.role)
