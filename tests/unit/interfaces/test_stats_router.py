"""Tests for /api/stats."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from tubekiosk.infrastructure.circuit_breaker import ProviderCircuitBreaker
from tubekiosk.infrastructure.metrics import MetricsCollector


def _build_app() -> tuple[TestClient, MetricsCollector, ProviderCircuitBreaker]:
    """Build a minimal FastAPI app with the stats router for testing."""
    from tubekiosk.interfaces.api.stats.router import router
    from tubekiosk.interfaces.app_state import AppState

    app = FastAPI()
    app.state = AppState()
    app.state.metrics = MetricsCollector()
    app.state.circuit_breaker = ProviderCircuitBreaker(failure_threshold=1)
    app.include_router(router, prefix="/api")
    return TestClient(app), app.state.metrics, app.state.circuit_breaker


class TestStatsEndpoint:
    def test_returns_200(self) -> None:
        client, _, _ = _build_app()
        assert client.get("/api/stats").status_code == 200

    def test_contains_uptime_and_selection(self) -> None:
        client, _, _ = _build_app()
        data = client.get("/api/stats").json()
        assert "uptime_seconds" in data
        assert data["selection"]["requests"] == 0

    def test_reflects_recorded_activity(self) -> None:
        client, metrics, breaker = _build_app()
        metrics.record_selection(
            duration_ns=1_000_000, pool_size=3, relaxed=False, biased=False, found=True
        )
        metrics.record_provider_call("youtube_api", 1_000_000, 0, success=False)
        breaker.record_failure("youtube_api", "quotaExceeded")

        data = client.get("/api/stats").json()

        assert data["selection"]["found"] == 1
        assert data["providers"]["youtube_api"]["failures"] == 1
        assert data["circuit_breaker"]["youtube_api"]["state"] == "open"
