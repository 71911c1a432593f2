"""Health check endpoints for production monitoring."""

from __future__ import annotations

import time

from fastapi import APIRouter, Request

from gapmatch.schemas.health import HealthResponse, ServiceHealth
from gapmatch.services.evidence_client import EvidenceEvaluationClient
from gapmatch.store import data_store

router = APIRouter(tags=["health"])


async def _check_service(name: str, check_fn) -> ServiceHealth:
    """Run a health check function and return a ServiceHealth result."""
    start = time.monotonic()
    try:
        healthy = await check_fn()
        latency = (time.monotonic() - start) * 1000
        return ServiceHealth(
            service=name,
            status="healthy" if healthy is not False else "unhealthy",
            latency_ms=round(latency, 2),
        )
    except Exception as exc:
        latency = (time.monotonic() - start) * 1000
        return ServiceHealth(
            service=name,
            status="unhealthy",
            latency_ms=round(latency, 2),
            details=str(exc)[:200],
        )


async def _check_app() -> bool:
    """Application self-check — always passes."""
    return True


def evaluation_client(request: Request) -> EvidenceEvaluationClient | None:
    """The configured evidence-evaluation client, or None when disabled."""
    client = getattr(request.app.state, "evaluation_client", None)
    if client is not None:
        return client
    settings = request.app.state.settings
    if not settings.evaluation_service_url:
        return None
    return EvidenceEvaluationClient.from_settings(settings)


def _response(request: Request, services: list[ServiceHealth], degraded: str) -> HealthResponse:
    settings = request.app.state.settings
    overall = "healthy" if all(s.status == "healthy" for s in services) else degraded
    return HealthResponse(
        status=overall,
        version=settings.app_version,
        environment=settings.environment,
        services=services,
        templates=len(data_store.templates),
        assessments=len(data_store.assessments),
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Basic health check — is the application running?"""
    return _response(request, [await _check_service("app", _check_app)], "degraded")


@router.get("/health/ready", response_model=HealthResponse)
async def readiness_check(request: Request) -> HealthResponse:
    """Readiness check — the app, plus the evaluation service when one is configured."""
    services = [await _check_service("app", _check_app)]
    client = evaluation_client(request)
    if client is not None:
        services.append(await _check_service("evaluation_service", client.test_connection))
    return _response(request, services, "unhealthy")


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """Liveness check: is the process alive?"""
    return {"status": "alive"}
