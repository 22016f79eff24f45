"""Tests for the application factory, its request sessions and response schemas."""

import importlib
import warnings

import pytest
from fastapi.testclient import TestClient
from pydantic.warnings import PydanticDeprecatedSince20

from portal.domain.access import schemas as access_schemas
from portal.domain.auth import schemas as auth_schemas
from portal.domain.bookings import schemas as booking_schemas
from portal.models import Booking, User


def test_requests_use_the_engine_given_to_create_app(production_app, db):
    with TestClient(production_app) as client:
        response = client.post(
            "/auth/register",
            json={
                "email": "engine@portal-test.de",
                "password": "s3cure-password",
                "first_name": "Eva",
                "last_name": "Engine",
            },
        )

    assert response.status_code == 201
    stored = db.query(User).filter(User.email == "engine@portal-test.de").one()
    assert stored.id == response.json()["user"]["id"]


def test_booking_flow_with_default_session_settings(production_app, make_user, make_timeslot, auth_headers, db):
    user, other = make_user(), make_user()
    slot = make_timeslot(max_bookings=1)

    with TestClient(production_app) as client:
        me = client.get("/auth/me", headers=auth_headers(user))
        booked = client.post("/bookings", headers=auth_headers(user), json={"timeslot_id": slot.id})
        full = client.post("/bookings", headers=auth_headers(other), json={"timeslot_id": slot.id})
        read = client.get(f"/bookings/{booked.json()['id']}", headers=auth_headers(user))
        cancelled = client.post(f"/bookings/{booked.json()['id']}/cancel", headers=auth_headers(user))
        rebooked = client.post("/bookings", headers=auth_headers(other), json={"timeslot_id": slot.id})

    assert me.json()["id"] == user.id
    assert booked.status_code == 201
    assert full.status_code == 409
    assert read.json()["status"] == "pending"
    assert cancelled.json()["status"] == "cancelled"
    assert rebooked.status_code == 201
    assert db.query(Booking).filter(Booking.timeslot_id == slot.id).count() == 2


@pytest.mark.parametrize("module", [auth_schemas, booking_schemas, access_schemas])
def test_schemas_use_current_pydantic_config(module):
    with warnings.catch_warnings():
        warnings.simplefilter("error", PydanticDeprecatedSince20)
        importlib.reload(module)
