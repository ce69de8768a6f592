"""
Default CRUD handlers.

Each handler calls the matching method of the resource's backend and
returns the operation carrying the backend's value as its result.
Resources may override any of them; overrides receive the default handler
so they can call through to it.

Create is special: the backend answers with an insert acknowledgment
({"result": {"ok": ...}, "insertedCount": n, "ops": [record]}) which is
unwrapped into the inserted record on success.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from .errors import BackendError, RestError
from .hooks import call_maybe_async
from .operation import Operation, OperationKind

logger = logging.getLogger(__name__)

Handler = Callable[[Operation], Awaitable[Operation]]
HandlerOverride = Callable[[Operation, Handler], Any]


async def _call_backend(operation: Operation, call: Callable[[], Any]) -> Any:
    """
    Run a backend call.

    Failures carrying a status_code are wrapped in BackendError. Anything
    else propagates unchanged and is reported as an unclassified 500.
    """
    try:
        return await call_maybe_async(call)
    except RestError:
        raise
    except Exception as e:
        if BackendError.status_of(e) is None:
            raise
        raise BackendError.wrap(e, operation.key) from e


def _field(source: Any, name: str) -> Any:
    """Read a field from a mapping or an attribute object."""
    if source is None:
        return None
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


async def do_read(operation: Operation) -> Operation:
    logger.debug(f"Performing a read operation: {operation.to_dict()}")
    backend = await operation.resource.get_backend()
    value = await _call_backend(operation, lambda: backend.read(operation))
    return operation.with_result(value)


async def do_list(operation: Operation) -> Operation:
    logger.debug(f"Performing a list operation: {operation.to_dict()}")
    backend = await operation.resource.get_backend()
    value = await _call_backend(operation, lambda: backend.list(operation))
    return operation.with_result(value)


async def do_create(operation: Operation) -> Operation:
    """
    Create a record and unwrap the insert acknowledgment.

    On success (ok and exactly one inserted document) the response status is
    set to 201 and the inserted record becomes the result. When the resource
    declares a schema the record is validated, but a failure is only logged:
    the record was already stored.

    Any other acknowledgment is returned as-is (its "result" part when
    present), which callers must read as an echo rather than an entity.
    """
    logger.debug(f"Performing a create operation: {operation.to_dict()}")
    backend = await operation.resource.get_backend()
    ack = await _call_backend(operation, lambda: backend.create(operation))
    logger.debug(f"Create result for {operation.resource.key}: {ack!r}")

    status = _field(ack, "result")
    inserted = _field(ack, "ops") or []
    if _field(status, "ok") and _field(ack, "insertedCount") == 1 and inserted:
        operation.response.status(201)
        record = inserted[0]
        if operation.resource.has_schema:
            await _check_created_record(operation, record)
        return operation.with_result(record)

    return operation.with_result(status if status is not None else ack)


async def _check_created_record(operation: Operation, record: Any) -> None:
    try:
        validator = await operation.resource.get_schema(operation.kind)
    except RestError as e:
        logger.warning(f"Cannot load schema to check created {operation.resource.key}: {e}")
        return

    if validator.validate(record):
        logger.debug(f"Created {operation.resource.key} record matches its schema")
    else:
        logger.warning(
            f"Created {operation.resource.key} record does not match its schema: "
            f"{validator.errors}"
        )


async def do_update(operation: Operation) -> Operation:
    logger.debug(f"Performing an update operation: {operation.to_dict()}")
    backend = await operation.resource.get_backend()
    value = await _call_backend(operation, lambda: backend.update(operation))
    return operation.with_result(value)


async def do_patch(operation: Operation) -> Operation:
    logger.debug(f"Performing a patch operation: {operation.to_dict()}")
    backend = await operation.resource.get_backend()
    value = await _call_backend(operation, lambda: backend.patch(operation))
    return operation.with_result(value)


async def do_remove(operation: Operation) -> Operation:
    logger.debug(f"Performing a remove operation: {operation.to_dict()}")
    backend = await operation.resource.get_backend()
    value = await _call_backend(operation, lambda: backend.remove(operation))
    return operation.with_result(value)


DEFAULT_HANDLERS: dict[OperationKind, Handler] = {
    OperationKind.READ: do_read,
    OperationKind.LIST: do_list,
    OperationKind.CREATE: do_create,
    OperationKind.UPDATE: do_update,
    OperationKind.PATCH: do_patch,
    OperationKind.REMOVE: do_remove,
}
