"""
Tests for application wiring: health, metrics and logging middleware
"""

import json
import logging

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.middleware.logging import QUIET_PATHS, JsonLogFormatter, RequestIdFilter, request_id_var
from engagement.utils.spotlight_cache import InMemorySpotlightCache
from main import app, create_app


class TestCreateApp:
    def test_routes_mounted_under_api_prefix(self):
        paths = {route.path for route in app.routes}
        assert "/api/v1/content/{content_id}/view" in paths
        assert "/api/v1/content/{content_id}/like" in paths
        assert "/api/v1/content/random" in paths
        assert "/health" in paths
        assert "/ready" in paths
        assert "/metrics" in paths

    def test_spotlight_cache_on_state(self):
        assert isinstance(create_app().state.spotlight_cache, InMemorySpotlightCache)

    @pytest.mark.asyncio
    async def test_health(self):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["version"] == "1.0.0"
        assert body["uptime_seconds"] >= 0

    @pytest.mark.asyncio
    async def test_metrics_exposed(self):
        """Test Prometheus exposition includes the engagement metrics"""
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/metrics")
        assert response.status_code == 200
        assert "engagement_views_recorded_total" in response.text
        assert "engagement_like_toggles_total" in response.text

    @pytest.mark.asyncio
    async def test_request_id_echoed(self):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"


class TestJsonLogFormatter:
    def test_json_output_includes_request_id_and_extras(self):
        record = logging.LogRecord("engagement.test", logging.INFO, __file__, 1, "View counted", None, None)
        record.status_code = 200
        request_id_var.set("abc")
        RequestIdFilter().filter(record)

        data = json.loads(JsonLogFormatter().format(record))

        assert data["message"] == "View counted"
        assert data["level"] == "INFO"
        assert data["request_id"] == "abc"
        assert data["status_code"] == 200


class TestReadiness:
    @pytest.mark.asyncio
    async def test_ready_when_database_reachable(self, client):
        """Test readiness reports the database check and cache stats"""
        response = await client.get("/ready")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        assert body["checks"]["database"]["status"] == "ok"
        assert body["checks"]["spotlight_cache"]["backend"] == "memory"

    @pytest.mark.asyncio
    async def test_not_ready_when_database_down(self, client, monkeypatch):
        """Test readiness fails with 503 instead of raising"""

        async def broken_execute(self, *args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        monkeypatch.setattr(AsyncSession, "execute", broken_execute)
        response = await client.get("/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        assert body["checks"]["database"]["status"] == "unavailable"


class TestAccessLog:
    def test_monitoring_paths_are_quiet(self):
        assert {"/health", "/ready", "/metrics"} <= QUIET_PATHS
