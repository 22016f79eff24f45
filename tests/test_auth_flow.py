"""Tests for registration, login, refresh-token rotation and logout over HTTP."""

import pytest

from portal.domain.auth.service import AuthService
from portal.errors import RefreshTokenInvalid
from portal.models import RefreshToken
from portal.security import hash_token

from .conftest import TEST_PASSWORD


def register(client, email="lisa@portal-test.de", password="s3cure-password"):
    return client.post(
        "/auth/register",
        json={"email": email, "password": password, "first_name": "Lisa", "last_name": "Muster"},
    )


def test_register_returns_user_and_tokens(client):
    response = register(client)

    assert response.status_code == 201
    body = response.json()
    assert body["user"]["email"] == "lisa@portal-test.de"
    assert body["user"]["role"] == "user"
    assert body["tokens"]["token_type"] == "Bearer"
    assert body["tokens"]["expires_in"] == 900

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['tokens']['access_token']}"})
    assert me.status_code == 200


def test_duplicate_registration_conflicts(client):
    register(client)
    response = register(client, email="LISA@portal-test.de")

    assert response.status_code == 409
    assert response.json()["code"] == "EMAIL_ALREADY_REGISTERED"


def test_short_password_is_rejected(client):
    assert register(client, password="short").status_code == 422


def test_login(client, make_user):
    user = make_user()

    response = client.post("/auth/login", json={"email": user.email, "password": TEST_PASSWORD})

    assert response.status_code == 200
    assert response.json()["user"]["id"] == user.id


def test_login_with_wrong_password(client, make_user):
    user = make_user()

    response = client.post("/auth/login", json={"email": user.email, "password": "wrong-password"})

    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_CREDENTIALS"


def test_unknown_email_looks_like_wrong_password(client):
    response = client.post("/auth/login", json={"email": "nobody@portal-test.de", "password": "whatever1"})

    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_CREDENTIALS"


def test_inactive_user_cannot_log_in(client, make_user):
    user = make_user(is_active=False)

    response = client.post("/auth/login", json={"email": user.email, "password": TEST_PASSWORD})

    assert response.status_code == 401


def test_refresh_rotates_token_and_keeps_expiry(client):
    tokens = register(client).json()["tokens"]

    response = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

    assert response.status_code == 200
    rotated = response.json()
    assert rotated["refresh_token"] != tokens["refresh_token"]
    assert rotated["access_token"] != tokens["access_token"]
    assert rotated["refresh_expires_at"] == tokens["refresh_expires_at"]

    # The old refresh token is spent
    reused = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert reused.status_code == 401
    assert reused.json()["code"] == "REFRESH_TOKEN_INVALID"

    again = client.post("/auth/refresh", json={"refresh_token": rotated["refresh_token"]})
    assert again.status_code == 200


def test_refresh_with_unknown_token(client):
    response = client.post("/auth/refresh", json={"refresh_token": "0" * 64})
    assert response.status_code == 401


def test_logout_revokes_access_and_refresh_token(client):
    tokens = register(client).json()["tokens"]
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}

    response = client.post("/auth/logout", headers=headers, json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 200

    me = client.get("/auth/me", headers=headers)
    assert me.status_code == 401
    assert me.json()["code"] == "TOKEN_REVOKED"

    refreshed = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 401


def test_logout_requires_authentication(client):
    assert client.post("/auth/logout", json={}).status_code == 401


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_revoke_all_refresh_tokens(db, make_user, token_service):
    user = make_user()
    service = AuthService(db, token_service)
    _, first = service.login(user.email, TEST_PASSWORD)
    _, second = service.login(user.email, TEST_PASSWORD)

    assert service.revoke_all_refresh_tokens(user.id) == 2

    for pair in (first, second):
        with pytest.raises(RefreshTokenInvalid):
            service.refresh(pair.refresh_token)


def test_refresh_token_is_stored_hashed(db, make_user, token_service):
    user = make_user()
    _, pair = AuthService(db, token_service).login(user.email, TEST_PASSWORD)

    stored = db.query(RefreshToken).filter(RefreshToken.user_id == user.id).one()

    assert stored.token_hash != pair.refresh_token
    assert stored.token_hash == hash_token(pair.refresh_token)
