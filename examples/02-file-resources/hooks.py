"""Hooks referenced from the resource files."""

from datetime import datetime, timezone


def stamp_created_at(op):
    return op.derive(payload={**op.payload, "created_at": datetime.now(timezone.utc).isoformat()})
