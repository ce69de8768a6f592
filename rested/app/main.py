"""
Rested - Declarative REST resources

FastAPI application entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request

from rested import __version__
from rested.app.dependencies import (
    build_loader,
    get_settings,
    initialize_services,
    shutdown_services,
)
from rested.config import AppSettings
from rested.resource import CapabilityRegistry, ResourceState
from rested.runtime import ResourceLoader

logger = logging.getLogger(__name__)


def configure_logging(settings: AppSettings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(
    settings: AppSettings | None = None,
    loader: ResourceLoader | None = None,
    capabilities: CapabilityRegistry | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings (environment-derived by default)
        loader: Resource loader (built from settings by default)
        capabilities: Registry resources resolve against when no loader
            is given (the global registry by default)
    """
    settings = settings or get_settings()
    if loader is None and capabilities is not None:
        loader = build_loader(settings, capabilities)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Mounts resource endpoints on startup and unmounts them on shutdown.
        """
        # Startup
        logger.info("Starting Rested services...")
        try:
            await initialize_services(app, loader)
            logger.info("Rested services initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize services: {e}", exc_info=True)
            raise

        yield

        # Shutdown
        logger.info("Shutting down Rested services...")
        try:
            await shutdown_services(app)
            logger.info("Rested services shut down successfully")
        except Exception as e:
            logger.error(f"Error during shutdown: {e}", exc_info=True)

    app = FastAPI(
        title=settings.service_name,
        description="Declarative REST resources with hookable CRUD pipelines",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    @app.get("/", tags=["root"])
    async def root() -> dict[str, str]:
        """Root endpoint with service info."""
        return {
            "service": settings.service_name,
            "version": __version__,
            "status": "running",
        }

    @app.get("/health", tags=["health"])
    async def health_check(request: Request) -> dict[str, Any]:
        """
        Health check endpoint.

        Reports each resource and its initialization state.
        """
        current = getattr(request.app.state, "loader", None)
        resources = current.resources if current is not None else []
        failed = [r.key for r in resources if r.state is ResourceState.FAILED]
        return {
            "status": "unhealthy" if failed else "healthy",
            "resources": {r.key: r.state.value for r in resources},
        }

    return app


settings = get_settings()
configure_logging(settings)
app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rested.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
