"""End-to-end tests for the HTTP boundary and its status-code mapping."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from venue_booking.config import Settings
from venue_booking.domain.models import Booking, BookingStatus, EventType
from venue_booking.main import (
    app,
    booking_repo,
    orchestrator,
    organizer_repo,
    timeline_repo,
    transition_guard,
    venue_repo,
)
from venue_booking.repos.memory import DatastoreError, seed_catalog

# Monday
_NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _reset_state(monkeypatch):
    """Fresh bookings, seeded catalog and a fixed clock for each test."""
    booking_repo._store.clear()
    timeline_repo._entries.clear()
    seed_catalog(venue_repo, organizer_repo)
    monkeypatch.setattr(orchestrator, "clock", lambda: _NOW)
    monkeypatch.setattr(orchestrator, "settings", Settings(timezone="UTC"))
    monkeypatch.setattr(transition_guard, "clock", lambda: _NOW)
    yield
    booking_repo._store.clear()
    timeline_repo._entries.clear()


@pytest.fixture()
def client():
    return TestClient(app)


def _payload(**overrides) -> dict:
    body = {
        "clubId": "club-music",
        "venueIds": ["cep-102"],
        "eventType": "closed_club",
        "eventName": "Unplugged evening",
        "startTime": "2026-03-04T18:00:00Z",
        "endTime": "2026-03-04T20:00:00Z",
        "expectedAttendees": 40,
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# POST /bookings
# ---------------------------------------------------------------------------


def test_create_returns_201_with_rows(client: TestClient):
    resp = client.post("/bookings", json=_payload(venueIds=["cep-102", "lt-1"]))

    assert resp.status_code == 201
    rows = resp.json()
    assert [r["venue_id"] for r in rows] == ["cep-102", "lt-1"]
    assert [r["status"] for r in rows] == ["approved", "pending"]
    assert rows[0]["batch_id"] == rows[1]["batch_id"]


@pytest.mark.parametrize(
    ("overrides", "code"),
    [
        ({"clubId": None}, "validation_error"),
        ({"eventType": "gala"}, "validation_error"),
        ({"startTime": "not a date"}, "validation_error"),
        ({"endTime": "2026-03-04T17:00:00Z"}, "validation_error"),
        ({"venueIds": "cep-102"}, "validation_error"),
        ({"startTime": "2026-03-04T10:00:00Z"}, "policy_violation"),
        ({"eventType": "co_curricular"}, "policy_violation"),
        (
            {"startTime": "2026-03-02T17:00:00Z", "endTime": "2026-03-02T19:00:00Z"},
            "policy_violation",
        ),
        ({"expectedAttendees": 500}, "capacity_exceeded"),
    ],
)
def test_create_rejections_are_400(client: TestClient, overrides, code):
    resp = client.post("/bookings", json=_payload(**overrides))
    assert resp.status_code == 400
    assert resp.json()["code"] == code
    assert resp.json()["error"]
    assert booking_repo.list_all() == []


def test_unknown_venue_is_404(client: TestClient):
    resp = client.post("/bookings", json=_payload(venueIds=["cep-102", "nowhere"]))
    assert resp.status_code == 404
    assert resp.json()["error"] == "One or more venues not found"


def test_unknown_club_is_404(client: TestClient):
    resp = client.post("/bookings", json=_payload(clubId="club-ghost"))
    assert resp.status_code == 404
    assert resp.json()["error"] == "Club not found"


def test_conflict_is_409_and_writes_nothing(client: TestClient):
    booking_repo.insert(
        Booking(
            organizer_id="club-debate",
            venue_id="lt-1",
            event_name="Finals",
            event_type=EventType.CLOSED_CLUB,
            start_time=datetime(2026, 3, 4, 19, 0, tzinfo=timezone.utc),
            end_time=datetime(2026, 3, 4, 21, 0, tzinfo=timezone.utc),
            status=BookingStatus.APPROVED,
            batch_id="existing",
        )
    )

    resp = client.post("/bookings", json=_payload(venueIds=["cep-102", "lt-1"]))

    assert resp.status_code == 409
    body = resp.json()
    assert body["code"] == "conflict"
    assert body["venueIds"] == ["lt-1"]
    assert body["error"] == (
        "Conflict: The following venues are already booked during this time: Lecture Theatre 1"
    )
    assert len(booking_repo.list_all()) == 1


def test_partial_failure_is_500_with_created_rows(client: TestClient, monkeypatch):
    real_insert = booking_repo.insert

    def flaky_insert(booking):
        if booking.venue_id == "seminar":
            raise DatastoreError("write quorum lost")
        return real_insert(booking)

    monkeypatch.setattr(booking_repo, "insert", flaky_insert)
    resp = client.post("/bookings", json=_payload(venueIds=["cep-102", "seminar", "cep-110"]))

    assert resp.status_code == 500
    body = resp.json()
    assert body["code"] == "partial_failure"
    assert body["failedVenueId"] == "seminar"
    assert body["bookedVenueIds"] == ["cep-102"]
    assert [row["venue_id"] for row in body["created"]] == ["cep-102"]


def test_storage_outage_during_conflict_check_is_500(client: TestClient, monkeypatch):
    def broken_query(*args, **kwargs):
        raise DatastoreError("timeout")

    monkeypatch.setattr(booking_repo, "query_overlapping", broken_query)
    resp = client.post("/bookings", json=_payload())
    assert resp.status_code == 500
    assert resp.json()["code"] == "storage_unavailable"


# ---------------------------------------------------------------------------
# Conflict probe and preview
# ---------------------------------------------------------------------------


def test_check_conflict_via_query_string(client: TestClient):
    client.post("/bookings", json=_payload())

    params = {
        "clubId": "club-robotics",
        "venueIds": "cep-102,seminar",
        "startTime": "2026-03-04T19:00:00Z",
        "endTime": "2026-03-04T21:00:00Z",
    }
    resp = client.get("/bookings/check-conflict", params=params)

    assert resp.status_code == 200
    assert resp.json() == {
        "hasConflict": True,
        "message": "Conflict: The following venues are already booked during this time: CEP 102",
    }


def test_check_conflict_back_to_back_is_clear(client: TestClient):
    client.post("/bookings", json=_payload())
    resp = client.post(
        "/bookings/check-conflict",
        json={
            "clubId": "club-robotics",
            "venueIds": ["cep-102"],
            "startTime": "2026-03-04T20:00:00Z",
            "endTime": "2026-03-04T22:00:00Z",
        },
    )
    assert resp.json() == {"hasConflict": False, "message": ""}


def test_check_conflict_missing_fields_is_400(client: TestClient):
    resp = client.get("/bookings/check-conflict", params={"venueIds": "cep-102"})
    assert resp.status_code == 400


def test_preview_returns_warnings(client: TestClient):
    resp = client.post(
        "/bookings/preview", json=_payload(venueIds=["lt-1"], startTime="2026-03-04T09:00:00Z")
    )
    assert resp.status_code == 200
    body = resp.json()
    assert {w["field"] for w in body["warnings"]} == {"hours", "venue"}
    assert body["conflict"] == {"hasConflict": False, "message": ""}
    assert body["isSubmittable"] is False
    assert booking_repo.list_all() == []


# ---------------------------------------------------------------------------
# Admin status changes and listings
# ---------------------------------------------------------------------------


def test_approve_then_reject_flow(client: TestClient):
    created = client.post("/bookings", json=_payload(venueIds=["lt-1"])).json()
    booking_id = created[0]["id"]

    pending = client.get("/admin/pending").json()
    assert [b["id"] for b in pending] == [booking_id]

    resp = client.patch(
        f"/admin/bookings/{booking_id}/status",
        json={"status": "approved", "adminNote": "Faculty approved"},
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "approved"
    assert resp.json()["admin_note"] == "Faculty approved"
    assert client.get("/admin/pending").json() == []

    resp = client.patch(f"/admin/bookings/{booking_id}/status", json={"status": "rejected"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_transition"

    timeline = client.get(f"/bookings/{booking_id}/timeline").json()
    assert [e["type"] for e in timeline] == ["created", "approved"]


def test_status_change_for_unknown_booking_is_404(client: TestClient):
    resp = client.patch("/admin/bookings/nope/status", json={"status": "approved"})
    assert resp.status_code == 404


def test_listings(client: TestClient):
    client.post("/bookings", json=_payload())
    client.post(
        "/bookings",
        json=_payload(
            clubId="club-robotics",
            venueIds=["lt-1"],
            startTime="2026-03-05T18:00:00Z",
            endTime="2026-03-05T19:00:00Z",
        ),
    )

    mine = client.get("/my-bookings", params={"clubId": "club-robotics"}).json()
    assert [b["venue_id"] for b in mine] == ["lt-1"]
    assert len(client.get("/admin/bookings").json()) == 2

    booking_id = mine[0]["id"]
    assert client.get(f"/bookings/{booking_id}").json()["event_name"] == "Unplugged evening"
    assert client.get("/bookings/missing").status_code == 404

    venue_ids = {v["id"] for v in client.get("/venues").json()}
    assert {"cep-102", "lt-1", "seminar"} <= venue_ids
    assert "club-music" in {c["id"] for c in client.get("/clubs").json()}
