"""플랫폼 앱 — 루트 엔드포인트, lifespan (스케줄러 기동/종료)."""

import pytest
from fastapi.testclient import TestClient

from rancher_platform.services.platform.app import app


@pytest.fixture(autouse=True)
def _quiet_env(monkeypatch):
    monkeypatch.setenv("METRICS_DEFAULT_COLLECTORS", "false")
    monkeypatch.setenv("COLLECTOR_ENABLED", "false")


class TestRoot:
    def test_application_info(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "staging")
        monkeypatch.setenv("ENABLE_MONITORING", "true")
        with TestClient(app) as client:
            resp = client.get("/")
        assert resp.status_code == 200
        body = resp.json()
        assert body["name"] == "Rancher Deployment Platform"
        assert body["status"] == "running"
        assert body["environment"] == "staging"
        assert body["features"]["monitoring"] is True
        assert body["uptime_seconds"] >= 0


class TestLifespan:
    def test_collector_disabled(self):
        with TestClient(app) as client:
            assert client.app.state.scheduler is None
            assert client.get("/health/live").status_code == 200

    def test_collector_jobs(self, monkeypatch):
        monkeypatch.setenv("COLLECTOR_ENABLED", "true")
        with TestClient(app) as client:
            scheduler = client.app.state.scheduler
            assert set(scheduler.jobs) == {"metrics-collect", "health-check", "health-digest"}
            assert all(job.running for job in scheduler.jobs.values())
            assert client.app.state.collector.sampler_names == ["uptime"]
        assert not any(job.running for job in scheduler.jobs.values())
