"""
Service Endpoint Tests
======================

FastAPI endpoints over a session backed by the in-memory backend.
"""

import pytest
from fastapi.testclient import TestClient

from crowd_dashboard import main


@pytest.fixture
def client(monkeypatch, session):
    monkeypatch.setattr(main, "_session", session)
    monkeypatch.setattr(main, "_backend", None)
    monkeypatch.setattr(main, "_shutdown_flag", False)
    return TestClient(main.app)


@pytest.fixture
def no_session_client(monkeypatch):
    monkeypatch.setattr(main, "_session", None)
    monkeypatch.setattr(main, "_backend", None)
    monkeypatch.setattr(main, "_startup_error", None)
    return TestClient(main.app)


class TestServiceEndpoints:
    """Informational endpoints."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "CrowdDashboard"

    def test_health(self, no_session_client):
        response = no_session_client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json()["area_id"] == "main-hall"

    def test_not_ready_without_session(self, no_session_client):
        assert no_session_client.get("/ready").status_code == 503
        assert no_session_client.get("/state").status_code == 503
        assert no_session_client.post("/apply").status_code == 503

    def test_metrics(self, client):
        client.post("/apply")
        body = client.get("/metrics").json()
        assert body["runs_issued"] == 1
        assert body["runs_published"] == 1
        assert body["live"] is False


class TestDashboardEndpoints:
    """Controls, focus, area and state."""

    def test_initial_state_is_idle(self, client):
        body = client.get("/state").json()
        assert body["status"] == "idle"
        assert body["token"] == 0

    def test_apply_publishes_snapshot(self, client):
        response = client.post("/apply")
        assert response.status_code == 200
        assert response.json() == {"outcome": "published", "token": 1, "status": "success"}

        state = client.get("/state").json()
        assert state["status"] == "success"
        assert state["stats"]["current"] == 31
        assert state["combined_grid"]["bounds"] == {
            "min_x": 0.0, "max_x": 20.0, "min_y": 0.0, "max_y": 10.0,
        }
        assert state["combined_grid"]["cells"][4][5] == 4.0
        assert state["combined_grid"]["cells"][4][15] == 2.0
        assert state["focus_instant"].startswith("2024-01-01T10:02:00")

    def test_controls(self, client, backend):
        response = client.post("/controls", json={
            "end_date": "2024-01-01T09:00:00Z",
            "lookback_hours": 24,
        })
        assert response.status_code == 200

        _, request = backend.series_calls[-1]
        assert request.lookback_hours == 24
        assert request.to_payload()["end_date"] == "2024-01-01T09:00:00Z"

        live = client.get("/live").json()
        assert live["controls"]["lookback_hours"] == 24

    def test_controls_validation(self, client):
        response = client.post("/controls", json={"lookback_hours": 0})
        assert response.status_code == 422

    def test_focus(self, client):
        response = client.post("/focus", json={"timestamp": "2024-01-01T10:01:00Z"})
        assert response.status_code == 200
        state = client.get("/state").json()
        assert state["focus_instant"].startswith("2024-01-01T10:01:00")

    def test_area_switch(self, client):
        response = client.post("/area", json={"area_id": "annex"})
        assert response.status_code == 200
        state = client.get("/state").json()
        assert state["area_id"] == "annex"
        assert state["missing_cameras"] == ["Annex Cam (east)"]

    def test_unknown_area(self, client):
        response = client.post("/area", json={"area_id": "nowhere"})
        assert response.status_code == 404

    def test_live_status(self, client):
        body = client.get("/live").json()
        assert body["live"] is False
        assert body["controls_enabled"] is True
        assert body["countdown"] == 30

    def test_controls_locked_while_live(self, client, session, monkeypatch):
        monkeypatch.setattr(type(session), "live", property(lambda self: True))
        response = client.post("/apply")
        assert response.status_code == 409
        response = client.post("/controls", json={"lookback_hours": 4})
        assert response.status_code == 409


class TestStateWebSocket:
    """Snapshot stream."""

    def test_sends_current_snapshot(self, client):
        client.post("/apply")
        with client.websocket_connect("/ws/state") as websocket:
            body = websocket.receive_json()
        assert body["token"] == 1
        assert body["status"] == "success"
