"""
Rested Resource Layer

Resources, their operations and the hook/handler engine behind them.
"""

from .capabilities import (
    Backend,
    CapabilityRegistry,
    get_capability_registry,
    register_backend,
    register_schemas,
    reset_capability_registry,
)
from .errors import (
    BackendError,
    ConfigurationError,
    HookError,
    ResourceNotReadyError,
    RestError,
    ValidationError,
)
from .handlers import DEFAULT_HANDLERS, Handler, HandlerOverride
from .hooks import DEFAULT_PRIORITY, Hook, HookPhase, order_hooks, run_hooks
from .operation import Operation, OperationKind, ResponseHandle
from .resource import Resource, ResourceState
from .result import Err, Ok
from .schema import JsonSchemaValidator
from .spec import BackendRef, HookSpec, HooksSpec, ResourceSpec, SchemaRef

__all__ = [
    # Resource
    "Resource",
    "ResourceState",
    "ResourceSpec",
    "BackendRef",
    "SchemaRef",
    "HookSpec",
    "HooksSpec",
    # Operation
    "Operation",
    "OperationKind",
    "ResponseHandle",
    "Ok",
    "Err",
    # Hooks & handlers
    "Hook",
    "HookPhase",
    "DEFAULT_PRIORITY",
    "order_hooks",
    "run_hooks",
    "Handler",
    "HandlerOverride",
    "DEFAULT_HANDLERS",
    # Capabilities
    "Backend",
    "CapabilityRegistry",
    "JsonSchemaValidator",
    "get_capability_registry",
    "register_backend",
    "register_schemas",
    "reset_capability_registry",
    # Errors
    "RestError",
    "ConfigurationError",
    "ResourceNotReadyError",
    "ValidationError",
    "BackendError",
    "HookError",
]
