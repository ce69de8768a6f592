"""
Pytest configuration and fixtures for Rested tests.
"""

import sys
from pathlib import Path

import pytest

# Add the repository root to path for imports
# This allows `from rested.resource import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from rested.backends import MemoryBackend  # noqa: E402
from rested.resource import (  # noqa: E402
    CapabilityRegistry,
    Operation,
    OperationKind,
    Resource,
    reset_capability_registry,
)


@pytest.fixture(autouse=True)
def _reset_global_registry():
    """Keep the global capability registry isolated between tests."""
    reset_capability_registry()
    yield
    reset_capability_registry()


@pytest.fixture
def widget_schema():
    """JSON schema for widgets."""
    return {
        "type": "object",
        "properties": {
            "id": {"type": "integer"},
            "name": {"type": "string"},
            "size": {"type": "integer", "minimum": 0},
        },
        "required": ["name"],
    }


@pytest.fixture
def memory_backend():
    """Fresh in-memory backend."""
    return MemoryBackend()


@pytest.fixture
def capabilities(memory_backend, widget_schema):
    """Registry with a 'memory' backend and a 'widgets' schema."""
    registry = CapabilityRegistry()
    registry.register_backend("memory", memory_backend)
    registry.register_schema("widgets", widget_schema)
    return registry


@pytest.fixture
def make_resource(capabilities):
    """Factory building resources against the test registry."""

    def _make(**declaration):
        declaration.setdefault("key", "widgets")
        declaration.setdefault("backend", "memory")
        return Resource(declaration, capabilities=capabilities)

    return _make


@pytest.fixture
def make_operation():
    """Factory building operations for a resource."""

    def _make(resource, kind, **fields):
        return Operation(resource=resource, kind=OperationKind.parse(kind), **fields)

    return _make
