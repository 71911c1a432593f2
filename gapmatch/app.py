"""gapmatch — FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from gapmatch.config import Settings, get_settings
from gapmatch.middleware import (
    configure_cors,
    configure_error_handlers,
    configure_rate_limiting,
    lifespan,
    logging_middleware,
)
from gapmatch.routers import assessments, health, templates, vendors


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="gapmatch",
        description="Compliance assessment scoring, gap detection and vendor matching",
        version=settings.app_version,
        lifespan=lifespan,
    )

    # Store settings on app state
    app.state.settings = settings

    # Middleware
    configure_cors(app, settings)
    configure_rate_limiting(app, settings)
    configure_error_handlers(app)
    app.middleware("http")(logging_middleware)

    # Routers
    app.include_router(health.router)
    app.include_router(templates.router)
    app.include_router(assessments.router)
    app.include_router(vendors.router)

    return app


# Default app instance for uvicorn
app = create_app()
