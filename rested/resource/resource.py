"""
Resource for Rested.

A Resource turns a declarative ResourceSpec into six CRUD operations:

    read / list / create / update / patch / remove

Each one runs the same composition:

    pre-hooks -> handler (override or default) -> post-hooks

Lifecycle:
    UNRESOLVED -> RESOLVING -> READY
                           \\-> FAILED (terminal)

Construction returns immediately. Backend and schema resolution run once,
on first use, as a single shared task; every public method awaits it
before touching resolved state. A failed resolution is never retried:
every later call raises ResourceNotReadyError with the original cause.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Mapping
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from .capabilities import Backend, CapabilityRegistry, get_capability_registry
from .errors import ConfigurationError, HookError, ResourceNotReadyError
from .handlers import DEFAULT_HANDLERS, Handler
from .hooks import Hook, HookPhase, call_maybe_async, order_hooks, run_hooks
from .operation import Operation, OperationKind
from .schema import JsonSchemaValidator
from .spec import ResourceSpec

if TYPE_CHECKING:
    from rested.config import AppSettings
    from rested.pipeline.endpoints import EndpointDescriptor

logger = logging.getLogger(__name__)


class ResourceState(str, Enum):
    """Initialization state of a resource."""

    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    READY = "ready"
    FAILED = "failed"


def _parse_spec(spec: ResourceSpec | Mapping[str, Any]) -> ResourceSpec:
    if isinstance(spec, ResourceSpec):
        return spec
    try:
        return ResourceSpec.model_validate(dict(spec))
    except PydanticValidationError as e:
        key = spec.get("key", "<unknown>") if isinstance(spec, Mapping) else "<unknown>"
        raise ConfigurationError(
            f"invalid declaration for resource '{key}'",
            details=[err["msg"] for err in e.errors()],
        ) from e


class Resource:
    """
    A REST-exposed entity backed by a storage capability.

    Example:
        resource = Resource({"key": "widgets", "backend": "memory"})
        op = Operation(resource=resource, kind=OperationKind.READ, id="7")
        op = await resource.read(op)
        print(op.value)
    """

    def __init__(
        self,
        spec: ResourceSpec | Mapping[str, Any] | Awaitable[Any],
        *,
        capabilities: CapabilityRegistry | None = None,
    ):
        """
        Args:
            spec: Resource declaration, or an awaitable resolving to one
            capabilities: Registry used to resolve backend and schema
                (defaults to the global registry)

        Raises:
            ConfigurationError: If a non-awaitable declaration is invalid
        """
        self._capabilities = capabilities
        self._pending_spec: Awaitable[Any] | None = None
        self._spec: ResourceSpec | None = None

        if inspect.isawaitable(spec):
            self._pending_spec = spec
        else:
            self._spec = _parse_spec(spec)

        self._state = ResourceState.UNRESOLVED
        self._init_task: asyncio.Future[None] | None = None
        self._failure: BaseException | None = None
        self._backend: Backend | None = None
        self._schemas: Mapping[str, dict[str, Any]] = {}

        self.operations = MappingProxyType({
            OperationKind.READ: self.read,
            OperationKind.LIST: self.list,
            OperationKind.CREATE: self.create,
            OperationKind.UPDATE: self.update,
            OperationKind.PATCH: self.patch,
            OperationKind.REMOVE: self.remove,
        })

    # ==================== Lifecycle ====================

    @property
    def state(self) -> ResourceState:
        return self._state

    @property
    def failure(self) -> BaseException | None:
        """The error that moved the resource to FAILED, if any."""
        return self._failure

    async def initialize(self) -> None:
        """
        Resolve backend and schema once.

        Concurrent callers share the same resolution task.
        """
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._resolve())
        # A cancelled caller must not cancel the shared resolution
        await asyncio.shield(self._init_task)

    async def ensure_ready(self) -> None:
        """
        Wait until the resource is READY.

        Raises:
            ResourceNotReadyError: If initialization failed
        """
        if self._state is ResourceState.READY:
            return
        try:
            await self.initialize()
        except ConfigurationError as e:
            raise ResourceNotReadyError(self.key, self._failure or e) from e

    async def _resolve(self) -> None:
        self._state = ResourceState.RESOLVING
        try:
            if self._pending_spec is not None:
                self._spec = _parse_spec(await self._pending_spec)
                self._pending_spec = None

            spec = self._spec
            registry = self._capabilities or get_capability_registry()

            self._backend = await registry.resolve_backend(spec.backend_key, spec.backend_config)
            logger.debug(f"Resolved backend '{spec.backend_key}' for resource '{spec.key}'")

            if spec.schema_key:
                self._schemas = await registry.resolve_schemas(spec.schema_key)
                logger.debug(f"Resolved schema '{spec.schema_key}' for resource '{spec.key}'")
        except Exception as e:
            self._state = ResourceState.FAILED
            self._failure = e
            logger.error(f"Resource '{self.key}' failed to initialize: {e}", exc_info=True)
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f"resource '{self.key}' failed to initialize: {e}") from e

        self._state = ResourceState.READY
        logger.info(f"Resource '{self.key}' initialized (backend={spec.backend_key})")

    # ==================== Declaration ====================

    @property
    def spec(self) -> ResourceSpec | None:
        return self._spec

    @property
    def key(self) -> str:
        return self._spec.key if self._spec is not None else "<pending>"

    @property
    def path(self) -> str | None:
        return self._spec.path if self._spec is not None else None

    @property
    def url_path(self) -> str:
        """Collection path, e.g. '/widgets'."""
        return f"/{self._spec.url_segment}" if self._spec is not None else "/"

    @property
    def has_schema(self) -> bool:
        return self._spec is not None and self._spec.schema_key is not None

    def hooks(self, phase: HookPhase) -> list[Hook]:
        """Declared hooks of a phase, in declaration order."""
        if self._spec is None:
            return []
        return self._spec.hooks.for_phase(HookPhase(phase))

    async def get_backend(self) -> Backend:
        await self.ensure_ready()
        return self._backend

    async def get_schema(self, kind: OperationKind | str | None = None) -> JsonSchemaValidator:
        """
        Build a validator for the resource's schema.

        Args:
            kind: Operation kind; PATCH yields a validator ignoring "required"

        Raises:
            ConfigurationError: If the resource has no schema or it is missing
        """
        await self.ensure_ready()
        schema_key = self._spec.schema_key
        if schema_key is None:
            raise ConfigurationError(f"resource '{self.key}' declares no schema")

        definition = self._schemas.get(schema_key)
        if definition is None:
            raise ConfigurationError(f"schema '{schema_key}' not found for resource '{self.key}'")

        partial = kind is not None and OperationKind.parse(kind) is OperationKind.PATCH
        return JsonSchemaValidator(definition, partial=partial)

    async def endpoints(self, settings: AppSettings | None = None) -> list[EndpointDescriptor]:
        """The six endpoint descriptors of this resource."""
        from rested.pipeline.endpoints import build_endpoints

        await self.ensure_ready()
        return build_endpoints(self, settings)

    # ==================== Hooks & handlers ====================

    async def execute_hooks(self, phase: HookPhase | str, operation: Operation) -> Operation:
        """Run the hooks of a phase matching the operation, in priority order."""
        await self.ensure_ready()
        hooks = order_hooks(self.hooks(HookPhase(phase)), operation.kind)
        return await run_hooks(hooks, operation)

    async def execute_handler(self, operation: Operation, default: Handler) -> Operation:
        """
        Run the handler override for the operation kind, or the default.

        Overrides are called as handler(operation, default) and may call
        through to default themselves.
        """
        await self.ensure_ready()
        override = self._spec.handlers.get(operation.kind)
        if override is None:
            return await default(operation)

        logger.debug(f"Using handler override for {self.key}.{operation.key}")
        returned = await call_maybe_async(override, operation, default)
        if returned is None:
            return operation
        if not isinstance(returned, Operation):
            raise HookError(
                f"handler for {self.key}.{operation.key} must return an Operation, "
                f"got {type(returned).__name__}"
            )
        return returned

    async def _run(self, operation: Operation, kind: OperationKind) -> Operation:
        if operation.kind is not kind:
            raise ValueError(f"{kind.value}() received a {operation.key} operation")
        logger.debug(f"Handling {kind.value} {self.key} operation: {operation.to_dict()}")

        operation = await self.execute_hooks(HookPhase.PRE, operation)
        operation = await self.execute_handler(operation, DEFAULT_HANDLERS[kind])
        return await self.execute_hooks(HookPhase.POST, operation)

    async def read(self, operation: Operation) -> Operation:
        return await self._run(operation, OperationKind.READ)

    async def list(self, operation: Operation) -> Operation:
        return await self._run(operation, OperationKind.LIST)

    async def create(self, operation: Operation) -> Operation:
        return await self._run(operation, OperationKind.CREATE)

    async def update(self, operation: Operation) -> Operation:
        return await self._run(operation, OperationKind.UPDATE)

    async def patch(self, operation: Operation) -> Operation:
        return await self._run(operation, OperationKind.PATCH)

    async def remove(self, operation: Operation) -> Operation:
        return await self._run(operation, OperationKind.REMOVE)

    async def dispatch(self, operation: Operation) -> Operation | None:
        """
        Run the operation matching operation.kind.

        Returns None when the resource exposes no such operation.
        """
        method = self.operations.get(operation.kind)
        if method is None:
            return None
        return await method(operation)

    def __repr__(self) -> str:
        return f"Resource(key={self.key!r}, state={self._state.value})"
