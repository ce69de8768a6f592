"""
Widgets Example

This example demonstrates a resource with a schema, hooks and a handler
override, driven directly (no HTTP):
1. Register a backend and a schema
2. Declare the resource
3. Run operations through pre-hooks, handler and post-hooks

Run: python -m examples.01-widgets.main
"""

import asyncio

from rested import Operation, OperationKind, Resource, register_backend, register_schemas
from rested.backends import MemoryBackend

# =============================================================================
# Hooks
# =============================================================================


def stamp_owner(op: Operation) -> Operation:
    """Runs first (priority 1)."""
    return op.derive(payload={**op.payload, "owner": "demo"})


def default_size(op: Operation) -> Operation:
    """Runs after stamp_owner (default priority 5)."""
    return op.derive(payload={"size": 1, **op.payload})


def count_results(op: Operation) -> Operation:
    return op.with_metadata(count=len(op.value or []))


async def newest_first(op: Operation, default):
    """List override calling through to the default handler."""
    op = await default(op)
    return op.with_result(sorted(op.value, key=lambda w: w["id"], reverse=True))


# =============================================================================
# Main
# =============================================================================


async def main():
    register_backend("memory", MemoryBackend())
    register_schemas({
        "widgets": {
            "type": "object",
            "properties": {"name": {"type": "string"}, "size": {"type": "integer"}},
            "required": ["name"],
        }
    })

    widgets = Resource({
        "key": "widgets",
        "backend": "memory",
        "schema": "widgets",
        "pre": [
            {"op": "create", "fn": default_size},
            {"op": "create", "fn": stamp_owner, "priority": 1},
        ],
        "post": [{"op": "list", "fn": count_results}],
        "handlers": {"list": newest_first},
    })

    for descriptor in await widgets.endpoints():
        print(f"{descriptor.method:6} {descriptor.path:16} {descriptor.chain.stage_names}")
    print()

    for name in ("left", "right"):
        op = Operation(resource=widgets, kind=OperationKind.CREATE, payload={"name": name})
        created = await widgets.create(op)
        print(f"Created ({created.response.status_code}): {created.value}")

    listed = await widgets.list(Operation(resource=widgets, kind=OperationKind.LIST))
    print(f"Listed {listed.metadata['count']}: {listed.value}")


if __name__ == "__main__":
    asyncio.run(main())
