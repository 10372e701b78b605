"""Tests for the HTTP API."""

from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from heattrail.routers import (
    health_router,
    heatmap_router,
    history_router,
    metrics_router,
    tracking_router,
)
from heattrail.schemas.sample import LocationSample, SampleSource
from heattrail.services.persistence import HISTORY_KEY, WAS_TRACKING_KEY
from heattrail.services.scheduler import BACKGROUND_TASK_ID
from heattrail.services.tracker import LocationTracker


def _record(lat: float, lng: float, ts: int) -> str:
    return LocationSample(
        latitude=lat, longitude=lng, timestamp_ms=ts, accuracy_m=5.0, source=SampleSource.CONTINUOUS
    ).to_record()


@pytest.fixture()
def tracker(gateway, provider, task_host, settings) -> LocationTracker:
    return LocationTracker(
        gateway, settings, provider_factory=lambda: provider, task_host=task_host
    )


@pytest.fixture()
def app(tracker) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await tracker.startup()
        app.state.tracker = tracker
        yield
        await tracker.shutdown()

    app = FastAPI(lifespan=lifespan)
    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(tracking_router)
    app.include_router(heatmap_router)
    app.include_router(history_router)
    return app


class TestHealth:
    """Test the liveness probe."""

    def test_health(self, app):
        with TestClient(app) as client:
            response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestTrackingApi:
    """Test tracking control endpoints."""

    def test_initial_status(self, app):
        with TestClient(app) as client:
            response = client.get("/api/tracking")
        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "stopped"
        assert data["is_tracking"] is False
        assert data["armed_path"] == "none"
        assert data["last_sample_at"] is None

    def test_start_pause_stop(self, app, gateway, task_host):
        with TestClient(app) as client:
            response = client.post("/api/tracking/start")
            assert response.status_code == 200
            assert response.json()["is_tracking"] is True
            assert response.json()["armed_path"] == "foreground"

            response = client.post("/api/tracking/lifecycle", json={"event": "paused"})
            assert response.status_code == 200
            assert response.json() == {"event": "paused", "armed_path": "background"}
            assert task_host.is_registered(BACKGROUND_TASK_ID)

            response = client.post("/api/tracking/stop")
            assert response.status_code == 200
            assert response.json()["state"] == "stopped"
            assert not task_host.is_registered(BACKGROUND_TASK_ID)

    def test_unknown_lifecycle_event(self, app):
        with TestClient(app) as client:
            response = client.post("/api/tracking/lifecycle", json={"event": "sleeping"})
        assert response.status_code == 422

    def test_restores_tracking_on_startup(self, app, gateway):
        gateway._data[WAS_TRACKING_KEY] = True
        with TestClient(app) as client:
            response = client.get("/api/tracking")
        assert response.json()["is_tracking"] is True
        assert response.json()["armed_path"] == "foreground"

    def test_storage_failure_returns_503(self, app, gateway):
        with TestClient(app) as client:
            gateway.fail_writes = True
            response = client.post("/api/tracking/start")
        assert response.status_code == 503


class TestHeatmapApi:
    """Test heatmap endpoints."""

    def test_cells_from_persisted_history(self, app, gateway):
        gateway._data[HISTORY_KEY] = [
            _record(37.0001, -122.0001, 1_000),
            _record(37.0002, -122.0002, 2_000),
            _record(40.0, -74.0, 3_000),
        ]
        with TestClient(app) as client:
            response = client.get("/api/heatmap")
        assert response.status_code == 200
        cells = {c["key"]: c for c in response.json()}
        assert cells["37.000,-122.000"]["visit_count"] == 2
        assert cells["37.000,-122.000"]["band"] == "low"
        assert cells["40.000,-74.000"]["radius_m"] == 50.0

    def test_cell_detail(self, app, gateway):
        gateway._data[HISTORY_KEY] = [_record(37.0001, -122.0001, 1_000)]
        with TestClient(app) as client:
            response = client.get("/api/heatmap/37.000,-122.000")
        assert response.status_code == 200
        members = response.json()["members"]
        assert len(members) == 1
        assert members[0]["timestamp"] == 1_000
        assert members[0]["source"] == "continuous"

    def test_unknown_cell_404(self, app):
        with TestClient(app) as client:
            response = client.get("/api/heatmap/1.000,1.000")
        assert response.status_code == 404


class TestHistoryApi:
    """Test history endpoints."""

    def test_list_with_limit(self, app, gateway):
        gateway._data[HISTORY_KEY] = [_record(37.0 + i, -122.0, i) for i in range(5)]
        with TestClient(app) as client:
            response = client.get("/api/history", params={"limit": 2})
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 5
        assert data["capacity"] == 1000
        assert [s["timestamp"] for s in data["samples"]] == [3, 4]

    def test_invalid_limit(self, app):
        with TestClient(app) as client:
            response = client.get("/api/history", params={"limit": 0})
        assert response.status_code == 422

    def test_clear(self, app, gateway):
        gateway._data[HISTORY_KEY] = [_record(37.0, -122.0, 1)]
        with TestClient(app) as client:
            assert client.delete("/api/history").status_code == 204
            assert client.get("/api/history").json()["total"] == 0
            assert client.get("/api/heatmap").json() == []
        assert HISTORY_KEY not in gateway.keys()


class TestMetricsApi:
    """Test the Prometheus endpoint."""

    def test_metrics(self, app, gateway):
        gateway._data[HISTORY_KEY] = [_record(37.0, -122.0, 1), _record(38.0, -122.0, 2)]
        with TestClient(app) as client:
            response = client.get("/metrics")
        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "heattrail_samples_stored 2.0" in response.text
        assert "heattrail_heat_cells 2.0" in response.text
        assert 'heattrail_tracking_state{state="stopped"} 1.0' in response.text
