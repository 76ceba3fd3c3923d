"""Tests for event endpoints and the registration / redemption flow over HTTP.

Covers:
- Event create / get / list, counter starts at zero
- Register → 200 with signed credential; error codes for each refusal
- Full end-to-end: register, fill up, scan, rescan, tamper
- register-multiple partial success
- Unregister frees the place
"""
import json
from datetime import timedelta

from tests.conftest import create_test_event, create_test_user


def _register(client, event_id: str, user_id: str):
    return client.post(f"/api/events/{event_id}/register", json={"user_id": user_id})


class TestEventCreate:
    """Event creation and reads."""

    def test_create_event(self, client):
        data = create_test_event(client, capacity=30, title="Tech Talk")
        assert data["title"] == "Tech Talk"
        assert data["max_participants"] == 30
        assert data["current_participants"] == 0
        assert data["version"] == 1

    def test_zero_capacity_rejected(self, client):
        resp = client.post("/api/events/", json={
            "title": "Nobody",
            "date": "2030-01-02T10:00:00+00:00",
            "registration_deadline": "2030-01-01T10:00:00+00:00",
            "max_participants": 0,
        })
        assert resp.status_code == 422

    def test_deadline_after_event_rejected(self, client):
        resp = client.post("/api/events/", json={
            "title": "Backwards",
            "date": "2030-01-01T10:00:00+00:00",
            "registration_deadline": "2030-01-02T10:00:00+00:00",
            "max_participants": 5,
        })
        assert resp.status_code == 400

    def test_get_and_list(self, client):
        event = create_test_event(client, title="Listed")
        assert client.get(f"/api/events/{event['event_id']}").json()["title"] == "Listed"
        assert "Listed" in [e["title"] for e in client.get("/api/events/").json()]

    def test_get_unknown_event(self, client):
        assert client.get("/api/events/missing").status_code == 404


class TestRegister:
    """Single-event registration through the API."""

    def test_register_returns_signed_credential(self, client, codec):
        student = create_test_user(client, name="Asha")
        event = create_test_event(client)
        resp = _register(client, event["event_id"], student["user_id"])
        assert resp.status_code == 200
        data = resp.json()
        assert data["ok"] is True
        qr = json.loads(data["credential"]["qr_data"])
        assert qr["student_id"] == student["user_id"]
        assert qr["event_id"] == event["event_id"]
        assert codec.verify(codec.decode(data["credential"]["qr_data"]))

    def test_register_twice_conflicts(self, client):
        student = create_test_user(client)
        event = create_test_event(client)
        _register(client, event["event_id"], student["user_id"])
        resp = _register(client, event["event_id"], student["user_id"])
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Already registered for this event"

    def test_unknown_user_or_event(self, client):
        student = create_test_user(client)
        event = create_test_event(client)
        assert _register(client, "missing", student["user_id"]).status_code == 404
        assert _register(client, event["event_id"], "ghost").status_code == 404

    def test_deadline_passed(self, client):
        student = create_test_user(client)
        event = create_test_event(client, deadline_in=timedelta(minutes=-5))
        resp = _register(client, event["event_id"], student["user_id"])
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Registration deadline has passed"


class TestEndToEnd:
    """Register, fill the event, then redeem at the door."""

    def test_full_flow(self, client):
        event = create_test_event(client, capacity=1, title="Robotics Workshop")
        first = create_test_user(client, name="First")
        second = create_test_user(client, name="Second")

        resp = _register(client, event["event_id"], first["user_id"])
        assert resp.status_code == 200
        qr_data = resp.json()["credential"]["qr_data"]
        assert client.get(f"/api/events/{event['event_id']}").json()["current_participants"] == 1

        full = _register(client, event["event_id"], second["user_id"])
        assert full.status_code == 400
        assert full.json()["detail"] == "Event is full"

        scan = client.post("/api/qr/validate", json={
            "qr_data": qr_data, "event_id": event["event_id"], "scanned_by": "gate-1", "location": "Lab 3",
        })
        assert scan.status_code == 200
        assert scan.json()["valid"] is True
        assert scan.json()["status"] == "attended"
        assert scan.json()["student_name"] == "First"

        rescan = client.post("/api/qr/validate", json={"qr_data": qr_data})
        assert rescan.json()["outcome"] == "duplicate"
        assert rescan.json()["reason"] == "already attended"

        tampered = json.loads(qr_data)
        tampered["signature"] = tampered["signature"][::-1]
        bad = client.post("/api/qr/validate", json={"qr_data": json.dumps(tampered)})
        assert bad.json()["valid"] is False
        assert bad.json()["reason"] == "bad signature"


class TestRegisterMultiple:

    def test_partial_success(self, client):
        student = create_test_user(client)
        open_event = create_test_event(client, title="Open")
        closed_event = create_test_event(client, title="Closed", deadline_in=timedelta(minutes=-5))
        resp = client.post("/api/events/register-multiple", json={
            "user_id": student["user_id"],
            "event_ids": [open_event["event_id"], closed_event["event_id"]],
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["total_events"] == 2
        assert data["successful_registrations"] == 1
        by_event = {r["event_id"]: r for r in data["results"]}
        assert by_event[open_event["event_id"]]["ok"] is True
        assert by_event[closed_event["event_id"]]["failure"] == "deadline_passed"
        failed = data["failed_registrations"]
        assert [(f["event_id"], f["reason"]) for f in failed] == [
            (closed_event["event_id"], "Registration deadline has passed"),
        ]

    def test_empty_list_rejected(self, client):
        student = create_test_user(client)
        resp = client.post("/api/events/register-multiple", json={"user_id": student["user_id"], "event_ids": []})
        assert resp.status_code == 422


class TestUnregister:

    def test_unregister_frees_place(self, client):
        event = create_test_event(client, capacity=1)
        first = create_test_user(client, name="First")
        second = create_test_user(client, name="Second")
        _register(client, event["event_id"], first["user_id"])

        resp = client.post(f"/api/events/{event['event_id']}/unregister", json={"user_id": first["user_id"]})
        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"
        assert _register(client, event["event_id"], second["user_id"]).status_code == 200

    def test_unregister_without_registration(self, client):
        event = create_test_event(client)
        student = create_test_user(client)
        resp = client.post(f"/api/events/{event['event_id']}/unregister", json={"user_id": student["user_id"]})
        assert resp.status_code == 404

    def test_unregister_after_attending_conflicts(self, client):
        event = create_test_event(client)
        student = create_test_user(client)
        qr_data = _register(client, event["event_id"], student["user_id"]).json()["credential"]["qr_data"]
        client.post("/api/qr/validate", json={"qr_data": qr_data})
        resp = client.post(f"/api/events/{event['event_id']}/unregister", json={"user_id": student["user_id"]})
        assert resp.status_code == 409
