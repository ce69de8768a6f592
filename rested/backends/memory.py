"""
In-memory backend.

Implements the backend capability over plain dicts, one collection per
resource key. Intended for tests, demos and prototyping.

create() answers with the document-store insert acknowledgment the default
create handler expects:

    {"result": {"ok": True, "n": 1}, "insertedCount": 1, "ops": [record]}
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from rested.resource.errors import ValidationError

if TYPE_CHECKING:
    from rested.resource.operation import Operation

logger = logging.getLogger(__name__)


class MemoryBackend:
    """
    Dict-backed storage.

    Records are stored by str(id). Ids are assigned from a counter unless
    the payload carries its own "id".

    Example:
        registry.register_backend("memory", MemoryBackend())
        # or one store per resource declaration:
        registry.register_backend("memory", MemoryBackend)
    """

    def __init__(self, config: Mapping[str, Any] | None = None):
        config = dict(config or {})
        self.collection = config.get("collection")
        self.max_list = int(config.get("max_list", 1000))
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._ids = itertools.count(int(config.get("first_id", 1)))

    def _store(self, operation: Operation) -> dict[str, dict[str, Any]]:
        name = self.collection or operation.resource.key
        return self._collections.setdefault(name, {})

    @staticmethod
    def _payload(operation: Operation) -> dict[str, Any]:
        if not isinstance(operation.payload, Mapping):
            raise ValidationError(
                f"{operation.resource.key}.{operation.key}.payload.not.object",
            )
        return dict(operation.payload)

    async def read(self, operation: Operation) -> dict[str, Any] | None:
        record = self._store(operation).get(str(operation.id))
        return dict(record) if record is not None else None

    async def list(self, operation: Operation) -> list[dict[str, Any]]:
        records = list(self._store(operation).values())
        return [dict(record) for record in records[: self.max_list]]

    async def create(self, operation: Operation) -> dict[str, Any]:
        payload = self._payload(operation)
        store = self._store(operation)

        record_id = payload.get("id")
        if record_id is None:
            record_id = next(self._ids)
            while str(record_id) in store:
                record_id = next(self._ids)
        elif str(record_id) in store:
            logger.debug(f"Duplicate id {record_id!r} in {operation.resource.key}")
            return {"result": {"ok": False, "n": 0}, "insertedCount": 0, "ops": []}

        record = {**payload, "id": record_id}
        store[str(record_id)] = record
        return {"result": {"ok": True, "n": 1}, "insertedCount": 1, "ops": [dict(record)]}

    async def update(self, operation: Operation) -> dict[str, Any] | None:
        store = self._store(operation)
        existing = store.get(str(operation.id))
        if existing is None:
            return None
        record = {**self._payload(operation), "id": existing["id"]}
        store[str(operation.id)] = record
        return dict(record)

    async def patch(self, operation: Operation) -> dict[str, Any] | None:
        store = self._store(operation)
        existing = store.get(str(operation.id))
        if existing is None:
            return None
        record = {**existing, **self._payload(operation), "id": existing["id"]}
        store[str(operation.id)] = record
        return dict(record)

    async def remove(self, operation: Operation) -> dict[str, Any] | None:
        return self._store(operation).pop(str(operation.id), None)

    def clear(self) -> None:
        self._collections.clear()

    def __len__(self) -> int:
        return sum(len(store) for store in self._collections.values())
