"""
Dependency Injection for Rested.

Provides singleton instances of settings, the capability registry and the
resource loader, plus the startup/shutdown hooks used by the lifespan.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import TYPE_CHECKING, Optional

from rested.config import AppSettings
from rested.resource.capabilities import CapabilityRegistry, get_capability_registry
from rested.runtime import (
    ChainedResourceLoader,
    EndpointRegistry,
    FileResourceLoader,
    MemoryResourceLoader,
    ModuleResourceLoader,
    ResourceLoader,
)

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get application settings from environment.

    Uses lru_cache for singleton pattern.
    """
    return AppSettings(
        # Service
        service_name=os.getenv("RESTED_SERVICE_NAME", "rested"),
        environment=os.getenv("RESTED_ENVIRONMENT", "development"),
        debug=os.getenv("RESTED_DEBUG", "false").lower() == "true",
        log_level=os.getenv("RESTED_LOG_LEVEL", "INFO"),
        # HTTP surface
        api_prefix=os.getenv("RESTED_API_PREFIX", ""),
        expose_internal_errors=os.getenv("RESTED_EXPOSE_INTERNAL_ERRORS", "false").lower() == "true",
        # Resource discovery
        resource_modules=_split_list(os.getenv("RESTED_RESOURCE_MODULES", "")),
        resource_dir=os.getenv("RESTED_RESOURCE_DIR") or None,
    )


# Global instances (initialized on first access)
_loader: Optional[ResourceLoader] = None


def get_capabilities() -> CapabilityRegistry:
    """Get the capability registry resources resolve against."""
    return get_capability_registry()


def build_loader(
    settings: AppSettings,
    capabilities: CapabilityRegistry | None = None,
) -> ResourceLoader:
    """
    Build the loader matching the settings.

    Modules and a resource directory may be combined; with neither, an
    empty MemoryResourceLoader is returned.
    """
    kwargs = {"capabilities": capabilities, "settings": settings}
    loaders: list[ResourceLoader] = []

    if settings.resource_modules:
        logger.info(f"[loader] Using ModuleResourceLoader: {settings.resource_modules}")
        loaders.append(ModuleResourceLoader(settings.resource_modules, **kwargs))
    if settings.resource_dir:
        logger.info(f"[loader] Using FileResourceLoader: {settings.resource_dir}")
        loaders.append(FileResourceLoader(settings.resource_dir, **kwargs))

    if not loaders:
        logger.info("[loader] Using MemoryResourceLoader (no resource source configured)")
        return MemoryResourceLoader(**kwargs)
    if len(loaders) == 1:
        return loaders[0]
    return ChainedResourceLoader(loaders, **kwargs)


def get_loader() -> ResourceLoader:
    """
    Get the resource loader configured from settings.

    Creates loader on first call.
    """
    global _loader
    if _loader is None:
        _loader = build_loader(get_settings(), get_capabilities())
    return _loader


async def initialize_services(
    app: FastAPI,
    loader: ResourceLoader | None = None,
) -> EndpointRegistry:
    """
    Load resources and mount their endpoints.

    Called from FastAPI lifespan.
    """
    loader = loader or get_loader()
    registry = EndpointRegistry(app)

    await loader.load()
    count = await loader.start(registry)

    app.state.loader = loader
    app.state.endpoint_registry = registry
    logger.info(f"Mounted {count} route(s) for {len(loader.resources)} resource(s)")
    return registry


async def shutdown_services(app: FastAPI) -> None:
    """
    Unmount resource endpoints.

    Called from FastAPI lifespan.
    """
    loader: ResourceLoader | None = getattr(app.state, "loader", None)
    registry: EndpointRegistry | None = getattr(app.state, "endpoint_registry", None)
    if loader is not None and registry is not None:
        await loader.stop(registry)


def reset_dependencies() -> None:
    """Forget cached settings and loader (for testing)."""
    global _loader
    _loader = None
    get_settings.cache_clear()
