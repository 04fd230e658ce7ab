"""
Tests for the JSON bodies and status codes of booking decisions over HTTP.

Validates:
1. A refused accept returns ok=false with the error code and its details
2. Each booking error maps to its status code (409, 400, 403, 404, 503)
3. A successful accept returns ok=true with the confirmed booking
4. The decision routes document the error body in the OpenAPI schema
"""
import sqlite3

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.main import app
from app.services.acceptance_coordinator import get_acceptance_coordinator
from app.services.auth import get_current_user
from app.services.booking_ledger import BookingLedger


@pytest.fixture
def client_as(coordinator):
    """HTTP client acting as the given user, deciding with the test coordinator"""
    app.dependency_overrides[get_acceptance_coordinator] = lambda: coordinator

    def _client_as(user):
        app.dependency_overrides[get_current_user] = lambda: user
        return TestClient(app)

    yield _client_as
    app.dependency_overrides.clear()


def test_accept_returns_confirmed_booking(client_as, make_offer, make_booking, driver):
    offer = make_offer(seats=4)
    booking = make_booking(offer, seats=2)

    response = client_as(driver).post(f"/bookings/{booking.id}/accept")

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["booking"]["id"] == booking.id
    assert body["booking"]["status"] == "confirmed"
    assert body["booking"]["seats"] == 2


def test_capacity_exceeded_body(client_as, coordinator, make_offer, make_booking, driver):
    offer = make_offer(seats=4)
    first = make_booking(offer, seats=2)
    second = make_booking(offer, seats=3)
    coordinator.accept(first.id, driver.id)

    response = client_as(driver).post(f"/bookings/{second.id}/accept")

    assert response.status_code == 409
    assert response.json() == {
        "ok": False,
        "error_code": "CAPACITY_EXCEEDED",
        "message": "Only 2 seat(s) available, booking requests 3",
        "available_seats": 2,
    }


def test_invalid_state_body(client_as, coordinator, make_offer, make_booking, driver):
    offer = make_offer(seats=4)
    booking = make_booking(offer, seats=2)
    coordinator.accept(booking.id, driver.id)

    response = client_as(driver).post(f"/bookings/{booking.id}/accept")

    assert response.status_code == 400
    assert response.json() == {
        "ok": False,
        "error_code": "INVALID_STATE",
        "message": "Booking is already confirmed and cannot be changed",
        "current_status": "confirmed",
    }


def test_forbidden_body(client_as, make_offer, make_booking, other_passenger):
    offer = make_offer(seats=4)
    booking = make_booking(offer, seats=1)

    response = client_as(other_passenger).post(f"/bookings/{booking.id}/reject")

    assert response.status_code == 403
    body = response.json()
    assert body["ok"] is False
    assert body["error_code"] == "FORBIDDEN"


def test_not_found_body(client_as, driver):
    response = client_as(driver).post("/bookings/9999/accept")

    assert response.status_code == 404
    assert response.json() == {
        "ok": False,
        "error_code": "NOT_FOUND",
        "message": "Booking 9999 not found",
    }


def test_unavailable_body(client_as, make_offer, make_booking, driver, monkeypatch):
    offer = make_offer(seats=4)
    booking = make_booking(offer, seats=1)

    def always_locked(self, booking_id):
        raise OperationalError(
            "BEGIN IMMEDIATE", {}, sqlite3.OperationalError("database is locked")
        )

    monkeypatch.setattr(BookingLedger, "lock_booking_and_offer", always_locked)

    response = client_as(driver).post(f"/bookings/{booking.id}/accept")

    assert response.status_code == 503
    body = response.json()
    assert body["ok"] is False
    assert body["error_code"] == "UNAVAILABLE"


@pytest.mark.parametrize("action", ["accept", "reject", "cancel"])
def test_decision_routes_document_error_bodies(action):
    responses = app.openapi()["paths"][f"/bookings/{{booking_id}}/{action}"]["post"][
        "responses"
    ]

    for status_code in ("400", "403", "404", "409", "503"):
        schema = responses[status_code]["content"]["application/json"]["schema"]
        assert schema["$ref"].endswith("/BookingErrorResponse")
