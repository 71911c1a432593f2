"""Tests for health checks, configuration, middleware and the application factory."""

from __future__ import annotations

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import ValidationError as SettingsValidationError

from gapmatch.app import create_app
from gapmatch.config import Settings
from gapmatch.middleware import configure_structured_logging, get_limiter, is_shutdown_requested, lifespan
from gapmatch.services.evidence_client import EvidenceEvaluationClient


def _mock_evaluation_client(status_code: int) -> EvidenceEvaluationClient:
    return EvidenceEvaluationClient(
        base_url="http://eval.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(status_code, json={"status": "ok"})),
    )


# ─── Health checks ───────────────────────────────────────────────────────────

class TestHealthChecks:
    """Tests for health check endpoints."""

    def test_basic_health_check(self, client):
        """GET /health should return healthy status."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert data["services"][0]["service"] == "app"
        assert data["services"][0]["latency_ms"] >= 0

    def test_health_reports_store_counts(self, client, sample_assessment):
        data = client.get("/health").json()
        assert data["templates"] == 1
        assert data["assessments"] == 1

    def test_liveness_check(self, client):
        response = client.get("/health/live")
        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    def test_readiness_without_evaluation_service(self, client):
        """Without a configured evaluation service only the app is checked."""
        data = client.get("/health/ready").json()
        assert data["status"] == "healthy"
        assert [s["service"] for s in data["services"]] == ["app"]

    def test_readiness_with_healthy_evaluation_service(self, app, client):
        app.state.evaluation_client = _mock_evaluation_client(200)
        data = client.get("/health/ready").json()
        assert data["status"] == "healthy"
        assert [s["service"] for s in data["services"]] == ["app", "evaluation_service"]

    def test_readiness_with_failing_evaluation_service(self, app, client):
        app.state.evaluation_client = _mock_evaluation_client(503)
        data = client.get("/health/ready").json()
        assert data["status"] == "unhealthy"
        evaluation = next(s for s in data["services"] if s["service"] == "evaluation_service")
        assert evaluation["status"] == "unhealthy"


# ─── CORS ────────────────────────────────────────────────────────────────────

class TestCORSConfiguration:
    """Tests for CORS middleware configuration."""

    def test_cors_allows_configured_origin(self, client):
        response = client.options(
            "/health",
            headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "GET"},
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"

    def test_cors_rejects_unconfigured_origin(self, client):
        response = client.options(
            "/health",
            headers={"Origin": "http://evil.example.com", "Access-Control-Request-Method": "GET"},
        )
        assert "evil.example.com" not in response.headers.get("access-control-allow-origin", "")


# ─── Configuration ───────────────────────────────────────────────────────────

class TestSettings:
    """Environment-driven configuration."""

    def test_defaults(self):
        settings = Settings()
        assert settings.app_name == "gapmatch"
        assert settings.weight_min == 0.01
        assert settings.weight_max == 0.99
        assert settings.weight_tolerance == 0.01
        assert (settings.gap_threshold_critical, settings.gap_threshold_high, settings.gap_threshold_medium) == (
            0.25,
            0.5,
            0.75,
        )
        assert settings.apply_tier_multiplier is False

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("GAPMATCH_EVALUATION_CONCURRENCY", "8")
        monkeypatch.setenv("GAPMATCH_APPLY_TIER_MULTIPLIER", "true")
        settings = Settings()
        assert settings.evaluation_concurrency == 8
        assert settings.apply_tier_multiplier is True

    def test_invalid_environment_rejected(self):
        with pytest.raises(SettingsValidationError):
            Settings(environment="qa")

    @pytest.mark.parametrize("field,value", [("weight_min", 0.6), ("weight_max", 1.0), ("evaluation_concurrency", 0)])
    def test_out_of_range_values_rejected(self, field, value):
        with pytest.raises(SettingsValidationError):
            Settings(**{field: value})

    def test_allowed_origins_list_parsing(self):
        settings = Settings(allowed_origins="http://a.com, http://b.com")
        assert settings.allowed_origins_list == ["http://a.com", "http://b.com"]


# ─── Middleware ──────────────────────────────────────────────────────────────

class TestMiddleware:
    """Rate limiting, logging, error serialisation and shutdown."""

    def test_rate_limiter_configured(self, app):
        assert app.state.limiter is not None
        assert get_limiter(Settings(rate_limit_default="5/minute")) is not None

    @pytest.mark.parametrize("fmt", ["json", "console"])
    def test_structured_logging_configured(self, fmt):
        configure_structured_logging(Settings(log_format=fmt))

    def test_engine_error_shape(self, client):
        response = client.get("/api/assessments/missing/score")
        assert response.status_code == 404
        detail = response.json()["detail"]
        assert set(detail) == {"kind", "message", "details"}
        assert detail["kind"] == "not_found"

    def test_lifespan_runs(self, settings):
        with TestClient(create_app(settings)) as client:
            assert client.get("/health/live").status_code == 200
        assert isinstance(is_shutdown_requested(), bool)
        assert callable(lifespan)


# ─── Application factory ─────────────────────────────────────────────────────

class TestApplicationFactory:
    """Tests for the application factory pattern."""

    def test_create_app_returns_fastapi(self, app):
        assert isinstance(app, FastAPI)
        assert app.title == "gapmatch"

    def test_custom_version(self):
        app = create_app(Settings(app_version="9.9.9"))
        assert app.version == "9.9.9"

    def test_all_routers_registered(self, client):
        paths = list(client.get("/openapi.json").json()["paths"])
        for prefix in ("/health", "/api/templates", "/api/assessments", "/api/vendors"):
            assert any(p.startswith(prefix) for p in paths), prefix

    def test_openapi_schema_generated(self, client):
        schema = client.get("/openapi.json").json()
        assert schema["info"]["title"] == "gapmatch"
        assert "/api/assessments/{assessment_id}/strategy-matrix" in schema["paths"]
