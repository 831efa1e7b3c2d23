"""Health API 단위 테스트 — 상태 코드 매핑."""

from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient
from pydantic import BaseModel

from rancher_platform.infra.probes import StaticProbe
from rancher_platform.services.base import create_app
from rancher_platform.services.deps import get_health_aggregator
from rancher_platform.services.health.aggregator import HealthAggregator


@pytest.fixture
def aggregator() -> HealthAggregator:
    return HealthAggregator(version="1.0.0", environment="test", probe_timeout=0.5)


@pytest.fixture
def client(aggregator):
    app = create_app("test-service")
    app.dependency_overrides[get_health_aggregator] = lambda: aggregator
    return TestClient(app, raise_server_exceptions=False)


class TestHealthEndpoint:
    def test_healthy(self, client, aggregator):
        aggregator.register("database", StaticProbe(latency_ms=1.5))
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["dependencies"] == [{"name": "database", "connected": True, "latency_ms": 1.5}]
        assert {"resident_bytes", "heap_used_bytes", "heap_total_bytes"} <= set(data["memory"])
        assert "timestamp" in data and "uptime_seconds" in data and "response_time_ms" in data

    def test_store_disconnected_returns_503(self, client, aggregator):
        aggregator.register("store", StaticProbe(connected=False))
        resp = client.get("/health")
        assert resp.status_code == 503
        data = resp.json()
        assert data["status"] == "unhealthy"
        assert data["dependencies"] == [{"name": "store", "connected": False}]

    def test_internal_fault_returns_500(self, client, aggregator):
        aggregator.register("database", StaticProbe())
        with patch(
            "rancher_platform.services.health.aggregator.process.memory_sample",
            side_effect=RuntimeError("boom"),
        ):
            resp = client.get("/health")
        assert resp.status_code == 500
        data = resp.json()
        assert data["status"] == "unhealthy"
        assert data["error"] == "boom"
        assert "timestamp" in data


class TestReadinessEndpoint:
    def test_ready(self, client, aggregator):
        aggregator.register("database", StaticProbe())
        aggregator.register("redis", StaticProbe())
        resp = client.get("/health/ready")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ready"
        assert resp.json()["services"] == {"database": "ready", "redis": "ready"}

    def test_not_ready(self, client, aggregator):
        aggregator.register("database", StaticProbe())
        aggregator.register("redis", StaticProbe(ready=False))
        resp = client.get("/health/ready")
        assert resp.status_code == 503
        assert resp.json()["status"] == "not ready"
        assert resp.json()["services"]["redis"] == "not ready"


class TestLivenessEndpoint:
    def test_alive_even_when_dependencies_down(self, client, aggregator):
        aggregator.register("database", StaticProbe(connected=False, ready=False))
        resp = client.get("/health/live")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "alive"
        assert data["pid"] > 0
        assert data["uptime_seconds"] >= 0


class TestDetailedEndpoint:
    def test_detailed(self, client, aggregator):
        aggregator.register("database", StaticProbe(details={"dialect": "sqlite"}))
        resp = client.get("/health/detailed")
        assert resp.status_code == 200
        data = resp.json()
        assert data["application"]["environment"] == "test"
        assert data["application"]["pid"] > 0
        assert "hostname" in data["system"]
        assert data["services"]["database"]["dialect"] == "sqlite"
        assert set(data["features"]) == {"monitoring", "backup", "security_scan", "auto_scaling"}

    def test_internal_fault_returns_500(self, client):
        with patch(
            "rancher_platform.services.health.aggregator.process.system_info",
            side_effect=RuntimeError("no psutil"),
        ):
            resp = client.get("/health/detailed")
        assert resp.status_code == 500
        data = resp.json()
        assert data["error"] == "Failed to get detailed health information"
        assert data["message"] == "no psutil"
        assert "timestamp" in data


class TestErrorEnvelopes:
    def test_unknown_route_404(self, client):
        resp = client.get("/api/v1/nothing")
        assert resp.status_code == 404
        assert resp.json() == {
            "error": {"message": "Route not found", "status": 404, "path": "/api/v1/nothing", "method": "GET"}
        }

    def test_unhandled_exception_500(self, aggregator):
        app = create_app("test-service")

        @app.get("/explode")
        def explode():
            raise RuntimeError("kaboom")

        resp = TestClient(app, raise_server_exceptions=False).get("/explode")
        assert resp.status_code == 500
        assert resp.json()["error"]["message"] == "kaboom"
        assert "stack" not in resp.json()["error"]

    def test_stack_in_development(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "development")
        app = create_app("test-service")

        @app.get("/explode")
        def explode():
            raise RuntimeError("kaboom")

        resp = TestClient(app, raise_server_exceptions=False).get("/explode")
        assert "RuntimeError" in resp.json()["error"]["stack"]

    def test_upstream_error_502(self):
        app = create_app("test-service")

        @app.get("/clusters")
        def clusters():
            request = httpx.Request("GET", "https://rancher.example.com/v3/clusters")
            response = httpx.Response(401, request=request)
            response.raise_for_status()

        resp = TestClient(app).get("/clusters")
        assert resp.status_code == 502
        assert resp.json()["error"] == {
            "message": "Upstream error: 401",
            "status": 502,
            "upstream": "https://rancher.example.com/v3/clusters",
        }

    def test_validation_error_400(self):
        app = create_app("test-service")

        @app.get("/bad-model")
        def bad_model():
            ProbeSettings.model_validate({"timeout": "soon"})

        resp = TestClient(app).get("/bad-model")
        assert resp.status_code == 400
        body = resp.json()["error"]
        assert body["message"] == "Validation error"
        assert body["details"][0]["loc"] == ["timeout"]


class ProbeSettings(BaseModel):
    timeout: float


class TestRequestValidation:
    def test_bad_query_param_returns_400(self):
        app = create_app("test-service")

        @app.get("/clusters")
        def clusters(limit: int = 10):
            return {"limit": limit}

        resp = TestClient(app).get("/clusters", params={"limit": "many"})

        assert resp.status_code == 400
        body = resp.json()["error"]
        assert body["message"] == "Validation error"
        assert body["status"] == 400
        assert body["details"][0]["loc"] == ["query", "limit"]
