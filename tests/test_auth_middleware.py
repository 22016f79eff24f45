"""Tests for bearer token extraction and request authentication."""

import asyncio

import pytest

from portal.auth import authenticate, extract_bearer_token, require_roles
from portal.errors import (
    InvalidAuthHeader,
    MissingCredentials,
    PermissionDenied,
    TokenExpired,
    TokenInvalid,
    TokenRevoked,
)
from portal.principal import Principal


def test_extracts_token_after_prefix():
    assert extract_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"


@pytest.mark.parametrize("header", [None, ""])
def test_missing_header(header):
    with pytest.raises(MissingCredentials):
        extract_bearer_token(header)


@pytest.mark.parametrize("header", ["bearer abc", "BEARER abc", "Token abc", "Bearerabc", "Bearer ", "abc"])
def test_prefix_is_case_sensitive_and_required(header):
    with pytest.raises(InvalidAuthHeader):
        extract_bearer_token(header)


def test_authenticate_builds_principal(token_service):
    token = token_service.issue_access_token("u1", "advisor", "u1@portal-test.de")

    principal = authenticate(f"Bearer {token}", token_service)

    assert principal.user_id == "u1"
    assert principal.role == "advisor"
    assert principal.email == "u1@portal-test.de"
    assert principal.token_id


def test_authenticate_rejects_revoked_token(token_service):
    token = token_service.issue_access_token("u1", "user")
    token_service.revoke(token)

    with pytest.raises(TokenRevoked):
        authenticate(f"Bearer {token}", token_service)


# ============================================================================
# HTTP BOUNDARY
# ============================================================================


def test_protected_route_without_header(client):
    response = client.get("/auth/me")

    assert response.status_code == 401
    assert response.json()["code"] == "MISSING_AUTH_HEADER"
    assert response.headers["www-authenticate"] == "Bearer"


def test_protected_route_with_lowercase_prefix(client, make_user, token_service):
    user = make_user()
    token = token_service.issue_access_token(user.id, user.role)

    response = client.get("/auth/me", headers={"Authorization": f"bearer {token}"})

    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_AUTH_FORMAT"


def test_protected_route_with_garbage_token(client):
    response = client.get("/auth/me", headers={"Authorization": "Bearer nonsense"})

    assert response.status_code == 401
    assert response.json()["code"] == TokenInvalid.code


def test_protected_route_with_expired_token(client, make_user, auth_headers, clock):
    headers = auth_headers(make_user())
    clock.advance(minutes=16)

    response = client.get("/auth/me", headers=headers)

    assert response.status_code == 401
    assert response.json()["code"] == TokenExpired.code


def test_revoked_token_reads_as_invalid_to_clients(client, make_user, auth_headers, token_service):
    headers = auth_headers(make_user())
    token_service.revoke(headers["Authorization"][len("Bearer "):])

    response = client.get("/auth/me", headers=headers)

    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid token", "code": "TOKEN_REVOKED"}


def test_valid_token_reaches_handler(client, make_user, auth_headers):
    user = make_user()

    response = client.get("/auth/me", headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["id"] == user.id
    assert response.json()["role"] == "user"


def test_require_roles():
    admin_only = require_roles("admin")
    admin = Principal(user_id="a1", role="admin")

    assert asyncio.run(admin_only(principal=admin)) is admin
    with pytest.raises(PermissionDenied):
        asyncio.run(admin_only(principal=Principal(user_id="u1", role="user")))


def test_session_with_valid_token(client, make_user, auth_headers):
    user = make_user("advisor")

    response = client.get("/auth/session", headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json() == {"authenticated": True, "user_id": user.id, "role": "advisor"}


@pytest.mark.parametrize("header", [None, "Bearer nonsense", "bearer abc"])
def test_session_without_usable_token_is_anonymous(client, header):
    headers = {"Authorization": header} if header else {}

    response = client.get("/auth/session", headers=headers)

    assert response.status_code == 200
    assert response.json() == {"authenticated": False, "user_id": None, "role": None}


def test_session_with_revoked_token_is_anonymous(client, make_user, auth_headers, token_service):
    headers = auth_headers(make_user())
    token_service.revoke(headers["Authorization"][len("Bearer "):])

    assert client.get("/auth/session", headers=headers).json()["authenticated"] is False
