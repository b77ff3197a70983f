"""
FastAPI application entrypoint for the Garmin credential broker.
"""

from __future__ import annotations

from fastapi import FastAPI

from garmin_broker.api.routes import router as api_router
from garmin_broker.core.config import get_settings
from garmin_broker.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Garmin Connect Credential Broker",
        version="0.1.0",
        description="Authenticated access to Garmin Connect health data tools.",
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
