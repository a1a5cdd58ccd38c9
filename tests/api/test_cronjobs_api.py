"""
Tests for the admin API (cron job refresh, job listing, health).

The app runs its real lifespan against a runtime wired with the fake job
factory from conftest, so nothing is actually armed.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from prnotify.api import create_app
from prnotify.runtime import build_runtime
from prnotify.scheduling.protocol import BackendHealth
from prnotify.workflows import WorkflowRegistry


@pytest.fixture
def runtime(settings, sample_configs, job_factory):
    return build_runtime(
        settings,
        configs=sample_configs,
        workflows=WorkflowRegistry(),
        job_factory=job_factory,
    )


@pytest.fixture
def client(runtime):
    with TestClient(create_app(runtime=runtime)) as test_client:
        yield test_client


class TestCreateApp:
    def test_returns_fastapi_instance(self, runtime):
        assert isinstance(create_app(runtime=runtime), FastAPI)

    def test_uses_runtime_settings(self, runtime):
        app = create_app(runtime=runtime)

        assert app.state.settings is runtime.settings
        assert app.title == "prnotify scheduler"

    def test_routes_registered(self, runtime):
        paths = {r.path for r in create_app(runtime=runtime).routes}

        assert {"/refresh-cronjobs", "/refresh-cronjobs/{job_id}", "/cronjobs", "/health"} <= paths


class TestLifespan:
    def test_start_schedules_and_shutdown_stops(self, runtime, job_factory):
        with TestClient(create_app(runtime=runtime)):
            assert job_factory.started is True
            assert runtime.engine.registry.ids() == [1, 2]

        assert job_factory.shut_down is True
        assert runtime.engine.registry.size() == 0


class TestRefreshCronjobs:
    def test_refresh_all(self, client, job_factory):
        response = client.post("/refresh-cronjobs")

        assert response.status_code == 200
        assert response.json() == {"message": "Cron jobs refreshed successfully", "scheduled": 2}
        # lifespan round stopped, refresh round live
        assert len(job_factory.created) == 4
        assert len(job_factory.live()) == 2

    def test_refresh_all_accepts_get(self, client):
        assert client.get("/refresh-cronjobs").status_code == 200

    def test_refresh_all_failure(self, client, runtime):
        with patch.object(runtime.engine, "initialize_job_scheduler", side_effect=RuntimeError("boom")):
            response = client.post("/refresh-cronjobs")

        assert response.status_code == 500
        body = response.json()
        assert body["message"] == "Failed to refresh cron jobs"
        assert body["error"] == {"error_type": "RuntimeError", "message": "boom"}


class TestRefreshCronjob:
    def test_refresh_one(self, client, runtime):
        old = runtime.engine.registry.get(1)

        response = client.post("/refresh-cronjobs/1")

        assert response.status_code == 200
        assert response.json() == {
            "message": "Cron job 1 refreshed successfully",
            "job_id": 1,
            "scheduled": True,
        }
        assert old.stopped
        assert runtime.engine.registry.get(1) is not old

    def test_inactive_job_reports_not_scheduled(self, client):
        response = client.post("/refresh-cronjobs/3")

        assert response.status_code == 200
        assert response.json()["scheduled"] is False

    @pytest.mark.parametrize("job_id", ["abc", "0", "-1", "1.5"])
    def test_invalid_id(self, client, job_id):
        response = client.post(f"/refresh-cronjobs/{job_id}")

        assert response.status_code == 400
        assert response.json() == {"message": "Valid job ID is required"}

    def test_unknown_id(self, client):
        response = client.post("/refresh-cronjobs/99")

        assert response.status_code == 500
        body = response.json()
        assert body["message"] == "Failed to refresh cron job 99"
        assert body["error"]["error_type"] == "ConfigurationError"
        assert body["error"]["message"] == "Job config not found for id: 99"

    def test_invalid_expression(self, client):
        response = client.post("/refresh-cronjobs/4")

        assert response.status_code == 500
        assert response.json()["error"]["category"] == "VALIDATION"


class TestListCronjobs:
    def test_lists_live_jobs(self, client):
        response = client.get("/cronjobs")

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert [job["id"] for job in body["data"]] == [1, 2]
        assert body["data"][0]["expression"] == "0 17 * * 1-5"
        assert body["data"][1]["timezone"] == "Asia/Ho_Chi_Minh"

    def test_after_stop(self, client, runtime):
        runtime.engine.stop_job(1)

        assert client.get("/cronjobs").json()["count"] == 1


class TestHealth:
    def test_healthy(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["service"] == "prnotify"
        assert body["jobs_live"] == 2
        assert body["backend"] == {"backend": "fake"}

    def test_unhealthy_backend(self, settings, sample_configs, job_factory):
        job_factory.health = lambda: BackendHealth(healthy=False, backend="fake")
        runtime = build_runtime(
            settings, configs=sample_configs, workflows=WorkflowRegistry(), job_factory=job_factory
        )

        with TestClient(create_app(runtime=runtime)) as client:
            response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"

    def test_live(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}


class TestUnhandledErrors:
    def test_returns_500_body(self, runtime):
        app = create_app(runtime=runtime)
        with TestClient(app, raise_server_exceptions=False) as client:
            with patch.object(runtime.engine, "jobs", side_effect=RuntimeError("kaput")):
                response = client.get("/cronjobs")

        assert response.status_code == 500
        assert response.json() == {"message": "Internal Server Error", "error": None}
