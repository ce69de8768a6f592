"""
Capability Registry for Rested.

Resources reference their storage backend and validation schemas by key.
The registry turns those keys into live objects during resource
initialization.

Backends are registered either as instances or as factories receiving the
backend config declared by the resource:

    registry = get_capability_registry()
    registry.register_backend("memory", MemoryBackend())
    registry.register_backend("scoped", lambda config: MemoryBackend(**config))
    registry.register_schemas({"widgets": {"type": "object", ...}})

Schemas are grouped by key: resolve_schemas(key) returns the whole
schema mapping a resource will pick its definition from.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .errors import ConfigurationError

if TYPE_CHECKING:
    from .operation import Operation

logger = logging.getLogger(__name__)


@runtime_checkable
class Backend(Protocol):
    """
    Storage capability consumed by the default handlers.

    create() must return an insert acknowledgment shaped as
    {"result": {"ok": bool}, "insertedCount": int, "ops": [record]}
    for the default create handler to return the inserted record.
    """

    async def read(self, operation: Operation) -> Any: ...

    async def list(self, operation: Operation) -> Any: ...

    async def create(self, operation: Operation) -> Any: ...

    async def update(self, operation: Operation) -> Any: ...

    async def patch(self, operation: Operation) -> Any: ...

    async def remove(self, operation: Operation) -> Any: ...


BackendFactory = Callable[[dict[str, Any]], Any]


class CapabilityRegistry:
    """
    Registry of backends and schemas available to resources.

    Example:
        registry = CapabilityRegistry()
        registry.register_backend("memory", MemoryBackend())
        backend = await registry.resolve_backend("memory")
    """

    def __init__(self) -> None:
        self._backends: dict[str, Any] = {}
        self._schemas: dict[str, dict[str, Any]] = {}

    # ==================== Backends ====================

    def register_backend(self, key: str, backend: Backend | BackendFactory) -> None:
        """
        Register a backend instance or factory.

        Note:
            Registering an existing key replaces it (useful for testing).
        """
        if key in self._backends:
            logger.warning(f"Replacing existing backend: {key}")
        self._backends[key] = backend
        logger.info(f"Registered backend: {key}")

    def unregister_backend(self, key: str) -> bool:
        if key in self._backends:
            del self._backends[key]
            logger.info(f"Unregistered backend: {key}")
            return True
        return False

    @property
    def registered_backends(self) -> list[str]:
        return list(self._backends.keys())

    async def resolve_backend(
        self,
        key: str,
        config: dict[str, Any] | None = None,
    ) -> Backend:
        """
        Resolve a backend key to a live backend.

        Args:
            key: Backend identifier
            config: Resource-level backend config, passed to factories

        Raises:
            ConfigurationError: If the key is unknown or the factory fails
        """
        entry = self._backends.get(key)
        if entry is None:
            available = ", ".join(self._backends.keys()) or "(none)"
            raise ConfigurationError(
                f"No backend registered for '{key}'. Available: {available}"
            )

        if _is_backend(entry):
            return entry

        try:
            backend = entry(dict(config or {}))
            if inspect.isawaitable(backend):
                backend = await backend
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"backend '{key}' failed to build: {e}") from e

        if not _is_backend(backend):
            raise ConfigurationError(
                f"backend factory '{key}' returned {type(backend).__name__}, "
                f"which does not expose read/list/create/update/patch/remove"
            )
        return backend

    # ==================== Schemas ====================

    def register_schema(self, key: str, definition: dict[str, Any]) -> None:
        if key in self._schemas:
            logger.warning(f"Replacing existing schema: {key}")
        self._schemas[key] = definition
        logger.info(f"Registered schema: {key}")

    def register_schemas(self, schemas: Mapping[str, dict[str, Any]]) -> None:
        for key, definition in schemas.items():
            self.register_schema(key, definition)

    @property
    def registered_schemas(self) -> list[str]:
        return list(self._schemas.keys())

    async def resolve_schemas(self, key: str) -> Mapping[str, dict[str, Any]]:
        """
        Resolve a schema key to the schema mapping containing it.

        Raises:
            ConfigurationError: If no schema is registered under key
        """
        if key not in self._schemas:
            available = ", ".join(self._schemas.keys()) or "(none)"
            raise ConfigurationError(
                f"No schema registered for '{key}'. Available: {available}"
            )
        return dict(self._schemas)

    def clear(self) -> None:
        """Clear all registered capabilities (for testing)."""
        self._backends.clear()
        self._schemas.clear()
        logger.debug("Cleared all capabilities")


BACKEND_METHODS = ("read", "list", "create", "update", "patch", "remove")


def _is_backend(candidate: Any) -> bool:
    # Classes expose the six methods too, but are factories
    if isinstance(candidate, type):
        return False
    return all(callable(getattr(candidate, name, None)) for name in BACKEND_METHODS)


# Global registry instance
_registry: CapabilityRegistry | None = None


def get_capability_registry() -> CapabilityRegistry:
    """
    Get the global capability registry.

    Creates the registry on first access (lazy initialization).
    """
    global _registry
    if _registry is None:
        _registry = CapabilityRegistry()
    return _registry


def register_backend(key: str, backend: Backend | BackendFactory) -> None:
    """Register a backend in the global registry."""
    get_capability_registry().register_backend(key, backend)


def register_schemas(schemas: Mapping[str, dict[str, Any]]) -> None:
    """Register schemas in the global registry."""
    get_capability_registry().register_schemas(schemas)


def reset_capability_registry() -> None:
    """
    Reset the global capability registry (for testing).

    Creates a fresh registry instance.
    """
    global _registry
    if _registry is not None:
        _registry.clear()
    _registry = None
