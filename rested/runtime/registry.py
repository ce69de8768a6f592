"""
Endpoint Registry for Rested.

Mounts endpoint descriptors on a FastAPI application (or APIRouter) and
removes them again on shutdown.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from fastapi.routing import APIRoute

if TYPE_CHECKING:
    from rested.pipeline.endpoints import EndpointDescriptor

logger = logging.getLogger(__name__)


class EndpointRegistry:
    """
    Registry of mounted resource routes.

    Example:
        registry = EndpointRegistry(app)
        registry.register(await resource.endpoints())
        ...
        registry.unregister(descriptors)
    """

    def __init__(self, target: Any):
        """
        Args:
            target: FastAPI application or APIRouter receiving the routes
        """
        self._target = target
        self._router = getattr(target, "router", target)
        self._routes: dict[tuple[str, str], APIRoute] = {}

    @property
    def registered(self) -> list[tuple[str, str]]:
        """(method, path) pairs currently mounted."""
        return list(self._routes.keys())

    def has(self, method: str, path: str) -> bool:
        return (method.upper(), path) in self._routes

    def register(self, descriptors: Iterable[EndpointDescriptor]) -> int:
        """
        Mount descriptors as routes.

        Returns:
            Number of routes mounted

        Note:
            A descriptor for an already mounted (method, path) replaces it.
        """
        count = 0
        for descriptor in descriptors:
            route_key = descriptor.route_key
            if route_key in self._routes:
                logger.warning(f"Replacing existing route: {route_key[0]} {route_key[1]}")
                self._remove_route(route_key)

            self._router.add_api_route(
                descriptor.route_path,
                descriptor.chain.as_endpoint(),
                methods=[descriptor.method],
                name=f"{descriptor.key}.{descriptor.kind.value}",
                tags=[descriptor.key],
            )
            self._routes[route_key] = self._router.routes[-1]
            count += 1
            logger.debug(f"Registered route: {descriptor.method} {descriptor.route_path}")

        self._reset_openapi()
        return count

    def unregister(self, descriptors: Iterable[EndpointDescriptor]) -> int:
        """
        Remove the routes of descriptors.

        Returns:
            Number of routes removed
        """
        count = 0
        for descriptor in descriptors:
            if self._remove_route(descriptor.route_key):
                count += 1
                logger.debug(f"Unregistered route: {descriptor.method} {descriptor.route_path}")
        self._reset_openapi()
        return count

    def clear(self) -> None:
        """Remove every route mounted by this registry."""
        for route_key in list(self._routes):
            self._remove_route(route_key)
        self._reset_openapi()

    def _remove_route(self, route_key: tuple[str, str]) -> bool:
        route = self._routes.pop(route_key, None)
        if route is None:
            return False
        if route in self._router.routes:
            self._router.routes.remove(route)
        return True

    def _reset_openapi(self) -> None:
        # FastAPI caches the generated schema on first access
        if hasattr(self._target, "openapi_schema"):
            self._target.openapi_schema = None
