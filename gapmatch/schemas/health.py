"""Schemas for health check endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class ServiceHealth(BaseModel):
    """Health of the app itself or one external collaborator."""

    service: str
    status: str
    latency_ms: float | None = None
    details: str | None = None


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str
    services: list[ServiceHealth]
    templates: int = 0
    assessments: int = 0
