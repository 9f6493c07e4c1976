"""
HTTP tests for the booking and health routers, with the orchestrator wired to in-memory adapters.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from booking_service.main import app
from booking_service.wiring.dependencies import get_booking_orchestrator, get_booking_store


@pytest.fixture
def client(orchestrator, store):
    app.dependency_overrides[get_booking_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_booking_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create(client, user="U1", date="2026-02-10T10:00:00", service="Suite Deluxe"):
    return client.post(
        "/api/v1/bookings",
        json={"date": date, "service_name": service},
        headers={"X-User-Id": user},
    )


def test_requests_without_identity_are_rejected(client):
    """Test that requests without X-User-Id get 401."""
    assert client.get("/api/v1/bookings").status_code == 401
    assert client.post("/api/v1/bookings", json={"date": "2026-02-10", "service_name": "x"}).status_code == 401


def test_create_booking(client, notifications):
    """Test that POST /bookings returns 201 with the formatted date and notifies."""
    resp = _create(client)

    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "ACTIVE"
    assert body["service_name"] == "Suite Deluxe"
    assert body["formatted_date"] == "10/02/2026 10:00:00"
    assert body["cancelled_at"] is None
    assert [n.email for n in notifications.created] == ["ana@example.com"]


def test_create_booking_errors(client, directory):
    """Test that create maps bad input to 400, unknown identity to 404 and a down directory to 503."""
    assert _create(client, date="tomorrow").status_code == 400
    assert _create(client, service="   ").status_code == 400
    assert _create(client, user="ghost").status_code == 404

    directory.unavailable = True
    assert _create(client).status_code == 503


def test_list_and_upcoming(client):
    """Test that list is newest first and upcoming honours the limit."""
    first = _create(client, date="2026-02-10T10:00:00").json()
    second = _create(client, date="2026-02-12T10:00:00").json()
    _create(client, date="2026-01-05T10:00:00")
    headers = {"X-User-Id": "U1"}

    listed = client.get("/api/v1/bookings", headers=headers).json()
    assert len(listed) == 3
    assert listed[0]["id"] == second["id"]

    upcoming = client.get("/api/v1/bookings/upcoming", params={"limit": 1}, headers=headers).json()
    assert [b["id"] for b in upcoming] == [first["id"]]

    assert client.get("/api/v1/bookings", headers={"X-User-Id": "U2"}).json() == []
    assert client.get("/api/v1/bookings/upcoming", params={"limit": 0}, headers=headers).status_code == 422


def test_get_booking_checks_ownership(client):
    """Test that another user's booking and a missing one both give the same 403."""
    booking = _create(client).json()

    own = client.get(f"/api/v1/bookings/{booking['id']}", headers={"X-User-Id": "U1"})
    assert own.status_code == 200
    assert own.json()["id"] == booking["id"]

    _create(client, user="U2")
    other = client.get(f"/api/v1/bookings/{booking['id']}", headers={"X-User-Id": "U2"})
    missing = client.get("/api/v1/bookings/nope", headers={"X-User-Id": "U1"})
    assert other.status_code == 403
    assert missing.status_code == 403
    assert other.json()["detail"] == missing.json()["detail"]


def test_cancel_booking(client, notifications):
    """Test that cancel returns the cancelled booking and a repeat cancel changes nothing."""
    booking = _create(client).json()
    headers = {"X-User-Id": "U1"}

    resp = client.post(f"/api/v1/bookings/{booking['id']}/cancel", headers=headers)

    assert resp.status_code == 200
    assert resp.json()["status"] == "CANCELLED"
    assert resp.json()["cancelled_at"] is not None
    assert len(notifications.cancelled) == 1

    again = client.post(f"/api/v1/bookings/{booking['id']}/cancel", headers=headers)
    assert again.status_code == 200
    assert again.json()["cancelled_at"] == resp.json()["cancelled_at"]
    assert len(notifications.cancelled) == 1


def test_cancel_by_unknown_caller_is_forbidden(client):
    """Test that a caller with no local record cannot cancel."""
    booking = _create(client).json()

    resp = client.post(f"/api/v1/bookings/{booking['id']}/cancel", headers={"X-User-Id": "stranger"})

    assert resp.status_code == 403


def test_delete_booking(client):
    """Test that delete removes the booking for good."""
    booking = _create(client).json()
    headers = {"X-User-Id": "U1"}

    resp = client.delete(f"/api/v1/bookings/{booking['id']}", headers=headers)

    assert resp.status_code == 200
    assert resp.json() == {"deleted": True}
    assert client.get(f"/api/v1/bookings/{booking['id']}", headers=headers).status_code == 403


def test_health_endpoints(client):
    """Test that the health, readiness and liveness endpoints answer."""
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"

    assert client.get("/health/ready").json()["status"] == "ready"
    assert client.get("/health/alive").json()["status"] == "alive"


def test_health_reports_unreachable_database(client, store, monkeypatch):
    """Test that health and readiness give 503 when the store is down."""
    monkeypatch.setattr(store, "ping", lambda: False)

    assert client.get("/health").status_code == 503
    assert client.get("/health/ready").status_code == 503
