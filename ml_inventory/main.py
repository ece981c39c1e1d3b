"""
FastAPI application entrypoint for the marketplace inventory backend.
"""

from __future__ import annotations

from fastapi import FastAPI

from ml_inventory.api.routes import router as api_router
from ml_inventory.core.config import get_settings
from ml_inventory.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Mercado Livre Inventory Manager",
        version="0.1.0",
        description=(
            "REST API for Mercado Livre account connection, fee and margin "
            "calculations, and competitor price analysis."
        ),
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
