"""
Rested - Declarative REST resources with hookable CRUD pipelines.

Rested turns a resource declaration (a storage backend, an optional JSON
schema, lifecycle hooks and handler overrides) into six CRUD endpoints and
runs every request through the same pipeline:

- **Setup**: Parse the body and build the Operation
- **Pre-hooks**: Priority-ordered, sequential
- **Handler**: Custom override or default backend call
- **Post-hooks**: Priority-ordered, sequential
- **Render**: JSON body, 201 on create, 404 on missing results
- **Errors**: One terminal handler mapping errors to HTTP statuses

Quick Start:
    >>> from rested import Resource, register_backend
    >>> from rested.backends import MemoryBackend
    >>>
    >>> register_backend("memory", MemoryBackend())
    >>> widgets = Resource({"key": "widgets", "backend": "memory"})
    >>> descriptors = await widgets.endpoints()
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Core exports for convenient imports
from rested.pipeline import EndpointDescriptor, StageChain
from rested.resource import (
    Operation,
    OperationKind,
    Resource,
    ResourceSpec,
    get_capability_registry,
    register_backend,
    register_schemas,
)

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Resources
    "Resource",
    "ResourceSpec",
    "Operation",
    "OperationKind",
    # Capabilities
    "get_capability_registry",
    "register_backend",
    "register_schemas",
    # Endpoints
    "EndpointDescriptor",
    "StageChain",
]
