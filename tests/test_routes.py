"""Tests for API routes."""

from datetime import timedelta

from fastapi.testclient import TestClient

from event_planner.core.timeutil import utc_now
from event_planner.models import EventStatus


def event_payload(**overrides) -> dict:
    payload = {
        "location": "Riverside Park",
        "planner_name": "Jane",
        "coordinator_email": "jane@x.com",
        "date_time": (utc_now() + timedelta(days=3)).isoformat(),
        "max_participants": 2,
        "title": "Morning Run",
    }
    payload.update(overrides)
    return payload


def signup_payload(**overrides) -> dict:
    payload = {"name": "Ann", "email": "ann@x.com", "waiver_accepted": True}
    payload.update(overrides)
    return payload


def create(client: TestClient, **overrides) -> dict:
    response = client.post("/api/events", json=event_payload(**overrides))
    assert response.status_code == 200
    return response.json()


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    def test_health_check(self, client: TestClient):
        """Test health check returns healthy status."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data


class TestEventEndpoints:
    """Tests for event endpoints."""

    def test_create_event(self, client: TestClient, mailer):
        """Creating an event returns it with both links and emails the coordinator."""
        data = create(client)

        event = data["event"]
        assert event["status"] == "active"
        assert event["signup_count"] == 0
        assert "coordinator_email" not in event
        assert data["links"]["signup"].endswith(f"/signup.html?id={event['id']}")
        assert data["links"]["manage"].endswith(f"/manage.html?id={event['id']}")
        assert mailer.recipients == ["jane@x.com"]

    def test_create_event_missing_fields(self, client: TestClient):
        response = client.post("/api/events", json={"location": "Park"})
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "validation_error"
        assert "coordinator_email" in data["fields"]
        assert "max_participants" in data["fields"]

    def test_malformed_body(self, client: TestClient):
        response = client.post("/api/events", json=event_payload(max_participants="lots"))
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_get_event(self, client: TestClient):
        event_id = create(client)["event"]["id"]
        response = client.get(f"/api/events/{event_id}")
        assert response.status_code == 200
        assert response.json()["title"] == "Morning Run"

    def test_get_missing_event(self, client: TestClient):
        response = client.get("/api/events/nope123")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_list_events_by_status(self, client: TestClient, make_event):
        make_event(title="Active Run")
        make_event(title="Done Run", status=EventStatus.COMPLETED)

        response = client.get("/api/events", params={"status": "completed"})

        assert response.status_code == 200
        assert [event["title"] for event in response.json()] == ["Done Run"]

    def test_update_event(self, client: TestClient, mailer):
        event_id = create(client)["event"]["id"]
        mailer.sent.clear()

        response = client.put(f"/api/events/{event_id}", json={"location": "Lakeside"})

        assert response.status_code == 200
        assert response.json()["location"] == "Lakeside"
        assert mailer.recipients == ["jane@x.com"]

    def test_update_inside_edit_lock(self, client: TestClient):
        event_id = create(client, date_time=(utc_now() + timedelta(hours=12)).isoformat())["event"]["id"]
        response = client.put(f"/api/events/{event_id}", json={"title": "Renamed"})
        assert response.status_code == 409
        assert response.json()["error"] == "edit_window_closed"

    def test_delete_requires_admin(self, client: TestClient, admin_token):
        event_id = create(client)["event"]["id"]

        response = client.delete(f"/api/events/{event_id}", headers={"X-Coordinator-Email": "jane@x.com"})
        assert response.status_code == 403

        response = client.delete(f"/api/events/{event_id}", headers={"X-Admin-Token": admin_token})
        assert response.status_code == 200
        assert response.json() == {"success": True}

        assert client.get(f"/api/events/{event_id}").status_code == 404
        response = client.get(f"/api/events/{event_id}", headers={"X-Admin-Token": admin_token})
        assert response.json()["status"] == "deleted"


class TestCancelEndpoint:
    """Tests for cancelling through the API."""

    def test_coordinator_cancels(self, client: TestClient, mailer):
        event_id = create(client)["event"]["id"]
        client.post(f"/api/events/{event_id}/signups", json=signup_payload())
        mailer.sent.clear()

        response = client.patch(
            f"/api/events/{event_id}/cancel",
            json={"coordinator_email": "JANE@x.com", "message": "Storm warning"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "cancelled"
        assert data["cancellation_message"] == "Storm warning"
        assert mailer.recipients == ["ann@x.com"]

    def test_wrong_email(self, client: TestClient):
        event_id = create(client)["event"]["id"]
        response = client.patch(f"/api/events/{event_id}/cancel", json={"coordinator_email": "bob@x.com"})
        assert response.status_code == 403
        assert response.json()["error"] == "unauthorized"

    def test_missing_email(self, client: TestClient):
        event_id = create(client)["event"]["id"]
        response = client.patch(f"/api/events/{event_id}/cancel")
        assert response.status_code == 403

    def test_cancel_twice(self, client: TestClient):
        event_id = create(client)["event"]["id"]
        body = {"coordinator_email": "jane@x.com"}
        assert client.patch(f"/api/events/{event_id}/cancel", json=body).status_code == 200

        response = client.patch(f"/api/events/{event_id}/cancel", json=body)
        assert response.status_code == 409
        assert response.json()["error"] == "already_cancelled"

    def test_admin_cancels_close_to_start(self, client: TestClient, make_event, admin_token):
        event = make_event(starts_in=timedelta(days=-1))
        soon_id = create(client, date_time=(utc_now() + timedelta(hours=2)).isoformat())["event"]["id"]

        response = client.patch(
            f"/api/events/{event.id}/cancel",
            json={"coordinator_email": "jane@x.com"},
        )
        assert response.status_code == 409
        assert response.json()["error"] == "too_close_to_start"

        response = client.patch(f"/api/events/{soon_id}/cancel", headers={"X-Admin-Token": admin_token})
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"


class TestSignupEndpoints:
    """Tests for signup endpoints."""

    def test_signup_until_full(self, client: TestClient, mailer):
        event_id = create(client, max_participants=1)["event"]["id"]

        response = client.post(f"/api/events/{event_id}/signups", json=signup_payload())
        assert response.status_code == 200
        assert response.json()["name"] == "Ann"
        assert "ann@x.com" in mailer.recipients

        response = client.post(f"/api/events/{event_id}/signups", json=signup_payload(name="Bob", email="bob@x.com"))
        assert response.status_code == 409
        assert response.json()["error"] == "event_full"

        assert client.get(f"/api/events/{event_id}").json()["signup_count"] == 1

    def test_signup_requires_waiver(self, client: TestClient):
        event_id = create(client)["event"]["id"]
        response = client.post(f"/api/events/{event_id}/signups", json=signup_payload(waiver_accepted=False))
        assert response.status_code == 400
        assert response.json()["fields"] == ["waiver_accepted"]

    def test_signup_on_cancelled_event(self, client: TestClient, make_event):
        event = make_event(status=EventStatus.CANCELLED)
        response = client.post(f"/api/events/{event.id}/signups", json=signup_payload())
        assert response.status_code == 409
        assert response.json()["error"] == "event_cancelled"

    def test_list_and_delete_signups(self, client: TestClient):
        event_id = create(client)["event"]["id"]
        signup_id = client.post(f"/api/events/{event_id}/signups", json=signup_payload()).json()["id"]
        owner = {"X-Coordinator-Email": "Jane@X.com"}

        assert client.get(f"/api/events/{event_id}/signups").status_code == 403
        assert client.get(
            f"/api/events/{event_id}/signups", headers={"X-Coordinator-Email": "ann@x.com"}
        ).status_code == 403

        response = client.get(f"/api/events/{event_id}/signups", headers=owner)
        assert response.status_code == 200
        assert [signup["name"] for signup in response.json()] == ["Ann"]

        response = client.delete(f"/api/events/{event_id}/signups/{signup_id}", headers=owner)
        assert response.status_code == 200
        assert response.json() == []
        assert client.get(f"/api/events/{event_id}").json()["signup_count"] == 0

        response = client.delete(f"/api/events/{event_id}/signups/{signup_id}", headers=owner)
        assert response.status_code == 404
        assert response.json()["error"] == "signup_not_found"


class TestAdminEndpoints:
    """Tests for administrative endpoints."""

    def test_sweep(self, client: TestClient, make_event, admin_token):
        make_event(starts_in=timedelta(days=-400))

        assert client.post("/api/admin/sweep").status_code == 403

        response = client.post("/api/admin/sweep", headers={"X-Admin-Token": admin_token})
        assert response.status_code == 200
        assert response.json()["completed"] == 1

        response = client.post("/api/admin/sweep", headers={"X-Admin-Token": admin_token})
        assert response.json() == {"completed": 0, "checked": 0, "failed": 0}
