"""
API Tests: Simulation Endpoints
===============================

Exercises the HTTP surface against a paused, seeded simulation service:
1. Snapshot reads (state, status, dashboard, metrics, logs)
2. Operator commands (step, traffic, toggle, reset, play/pause)
3. Validation errors in the structured error format
4. Advisor fallback
"""

import random
import pytest
from fastapi.testclient import TestClient

from sysarch.core import dependencies
from sysarch.core.config import settings
from sysarch.core.dependencies import get_simulation_service
from sysarch.main import app
from sysarch.services.advisor_service import AdvisorService, NOT_CONFIGURED_MESSAGE
from sysarch.services.simulation_service import SimulationService


BASE = f"{settings.API_PREFIX}/simulation"


@pytest.fixture
def service():
    service = SimulationService(rng=random.Random(11), advisor=AdvisorService(None))
    service.pause()
    return service


@pytest.fixture
def client(service):
    # no context manager: the lifespan tick loop stays off
    app.dependency_overrides[get_simulation_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestSnapshotEndpoints:
    """Tests for read-only endpoints"""

    def test_state(self, client):
        response = client.get(f"{BASE}/state")

        assert response.status_code == 200
        data = response.json()
        assert data["traffic_level"] == 100.0
        assert data["server_count"] == 1
        assert data["db_count"] == 1
        assert data["has_queue"] is False
        assert data["metrics_history"] == []
        assert "X-Request-ID" in response.headers

    def test_status(self, client):
        data = client.get(f"{BASE}/status").json()

        assert data["is_playing"] is False
        assert data["is_running"] is False
        assert data["tick"] == 0

    def test_metrics_and_logs(self, client):
        client.put(f"{BASE}/traffic", json={"level": 2000})
        for _ in range(5):
            client.post(f"{BASE}/step")

        metrics = client.get(f"{BASE}/metrics", params={"limit": 3}).json()
        logs = client.get(f"{BASE}/logs").json()

        assert len(metrics) == 3
        assert metrics[-1]["server_count"] >= 2
        assert len(logs) >= 1
        assert logs[0]["type"] in ("SUCCESS", "WARNING", "INFO")

    def test_limit_out_of_range(self, client):
        response = client.get(f"{BASE}/metrics", params={"limit": 500})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_dashboard(self, client):
        client.post(f"{BASE}/step")
        data = client.get(f"{BASE}/dashboard").json()

        assert data["server_count"] == 1
        assert data["queue_alert"] is False
        assert len(data["recent_metrics"]) == 1


class TestCommandEndpoints:
    """Tests for operator controls"""

    def test_step(self, client):
        data = client.post(f"{BASE}/step").json()

        assert data["tick"] == 1
        assert len(data["metrics_history"]) == 1

    def test_set_traffic(self, client, service):
        response = client.put(f"{BASE}/traffic", json={"level": 450})

        assert response.status_code == 200
        assert response.json()["traffic_level"] == 450.0
        assert service.state.traffic_level == 450.0

    def test_negative_traffic_rejected(self, client, service):
        response = client.put(f"{BASE}/traffic", json={"level": -10})

        assert response.status_code == 422
        body = response.json()
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert response.headers["X-Error-Code"] == "VALIDATION_ERROR"
        assert service.state.traffic_level == 100.0

    def test_adjust_and_normalize(self, client):
        assert client.post(f"{BASE}/traffic/adjust", json={"delta": 500}).json()["traffic_level"] == 600.0
        assert client.post(f"{BASE}/traffic/adjust", json={"delta": -50}).json()["traffic_level"] == 550.0
        assert client.post(f"{BASE}/traffic/normalize").json()["traffic_level"] == 100.0

    def test_toggle_auto_scaling(self, client):
        data = client.post(f"{BASE}/autoscaling/toggle").json()

        assert data["is_auto_scaling"] is False
        assert data["logs"][0]["message"] == "Auto-scaling Disabled"
        assert data["logs"][0]["type"] == "WARNING"

    def test_reset(self, client):
        client.put(f"{BASE}/traffic", json={"level": 1500})
        client.post(f"{BASE}/step")
        data = client.post(f"{BASE}/reset").json()

        assert data["traffic_level"] == 100.0
        assert data["server_count"] == 1
        assert data["has_queue"] is False
        assert data["logs"] == []

    def test_play_and_pause(self, client):
        assert client.post(f"{BASE}/play").json()["is_playing"] is True
        assert client.post(f"{BASE}/pause").json()["is_playing"] is False


class TestAdvisorEndpoints:
    """Tests for advisor endpoints without a configured provider"""

    def test_status(self, client):
        data = client.get(f"{BASE}/advisor").json()

        assert data["configured"] is False
        assert data["busy"] is False

    def test_report_fallback(self, client):
        response = client.post(f"{BASE}/advisor")

        assert response.status_code == 200
        data = response.json()
        assert data["report"] == NOT_CONFIGURED_MESSAGE
        assert data["fallback"] is True
        assert data["snapshot"]["server_count"] == 1

    def test_report_without_advisor(self, client):
        app.dependency_overrides[get_simulation_service] = lambda: SimulationService()
        response = client.post(f"{BASE}/advisor")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "SIMULATION_ERROR"


class TestRootEndpoints:
    """Tests for root and health endpoints"""

    def test_root(self, client):
        data = client.get("/").json()

        assert data["status"] == "running"
        assert data["api_base"] == settings.API_PREFIX

    def test_health_reports_stopped_loop(self, client, service, monkeypatch):
        monkeypatch.setattr(dependencies.registry, "simulation", service)
        data = client.get("/health").json()

        assert data["status"] == "degraded"
        assert data["tick_loop"] == "stopped"
        assert data["advisor_configured"] is False
