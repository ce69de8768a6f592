"""
Tests for Resource: lifecycle, handler dispatch and default handlers.
"""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from rested.resource import (
    CapabilityRegistry,
    ConfigurationError,
    HookError,
    Operation,
    OperationKind,
    Resource,
    ResourceNotReadyError,
    ResourceState,
    register_backend,
)

# =============================================================================
# Lifecycle
# =============================================================================


class TestResourceLifecycle:
    """Tests for two-phase initialization."""

    def test_construction_does_not_resolve(self, make_resource):
        resource = make_resource()
        assert resource.state is ResourceState.UNRESOLVED
        assert resource.key == "widgets"

    @pytest.mark.asyncio
    async def test_initialize_resolves_backend(self, make_resource, memory_backend):
        resource = make_resource()

        await resource.initialize()

        assert resource.state is ResourceState.READY
        assert await resource.get_backend() is memory_backend

    @pytest.mark.asyncio
    async def test_resolution_happens_once(self, widget_schema):
        backend = AsyncMock()
        calls = []

        def factory(config):
            calls.append(config)
            return backend

        registry = CapabilityRegistry()
        registry.register_backend("counted", factory)
        resource = Resource({"key": "widgets", "backend": "counted"}, capabilities=registry)

        await asyncio.gather(*(resource.ensure_ready() for _ in range(5)))
        await resource.ensure_ready()

        assert len(calls) == 1
        assert await resource.get_backend() is backend

    @pytest.mark.asyncio
    async def test_cancelled_waiter_leaves_resolution_running(self):
        backend = AsyncMock()
        gate = asyncio.Event()
        calls = []

        async def slow_factory(config):
            calls.append(config)
            await gate.wait()
            return backend

        registry = CapabilityRegistry()
        registry.register_backend("slow", slow_factory)
        resource = Resource({"key": "widgets", "backend": "slow"}, capabilities=registry)

        first = asyncio.create_task(resource.ensure_ready())
        second = asyncio.create_task(resource.ensure_ready())
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        gate.set()
        await second
        await resource.ensure_ready()

        assert first.cancelled()
        assert resource.state is ResourceState.READY
        assert await resource.get_backend() is backend
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_backend_ref_with_config(self):
        received = {}

        def factory(config):
            received.update(config)
            return AsyncMock()

        registry = CapabilityRegistry()
        registry.register_backend("docs", factory)
        resource = Resource(
            {"key": "widgets", "backend": {"ref": "docs", "config": {"collection": "w"}}},
            capabilities=registry,
        )

        await resource.initialize()

        assert received == {"collection": "w"}

    @pytest.mark.asyncio
    async def test_awaitable_spec(self, capabilities):
        async def declaration():
            return {"key": "gadgets", "backend": "memory"}

        resource = Resource(declaration(), capabilities=capabilities)
        assert resource.key == "<pending>"

        await resource.initialize()

        assert resource.key == "gadgets"
        assert resource.state is ResourceState.READY

    @pytest.mark.asyncio
    async def test_uses_global_registry_by_default(self, memory_backend):
        register_backend("memory", memory_backend)
        resource = Resource({"key": "widgets", "backend": "memory"})

        assert await resource.get_backend() is memory_backend

    def test_invalid_declaration_rejected(self, capabilities):
        with pytest.raises(ConfigurationError):
            Resource({"key": "widgets", "backend": "memory", "colour": "red"}, capabilities=capabilities)

    @pytest.mark.asyncio
    async def test_unknown_backend_fails(self, make_resource, make_operation):
        resource = make_resource(backend="nope")

        with pytest.raises(ResourceNotReadyError):
            await resource.ensure_ready()

        assert resource.state is ResourceState.FAILED
        assert isinstance(resource.failure, ConfigurationError)

    @pytest.mark.asyncio
    async def test_failure_is_terminal(self):
        calls = []

        def failing(config):
            calls.append(1)
            raise RuntimeError("connection refused")

        registry = CapabilityRegistry()
        registry.register_backend("flaky", failing)
        resource = Resource({"key": "widgets", "backend": "flaky"}, capabilities=registry)
        op = Operation(resource=resource, kind=OperationKind.READ, id="1")

        for _ in range(3):
            with pytest.raises(ResourceNotReadyError):
                await resource.read(op)

        assert len(calls) == 1
        assert resource.state is ResourceState.FAILED

    @pytest.mark.asyncio
    async def test_unknown_schema_fails(self, make_resource):
        resource = make_resource(schema="missing")

        with pytest.raises(ResourceNotReadyError):
            await resource.endpoints()


# =============================================================================
# Dispatch
# =============================================================================


class TestResourceDispatch:
    """Tests for the pre -> handler -> post composition."""

    @pytest.mark.asyncio
    async def test_pre_handler_post_ordering(self, make_operation, widget_schema):
        events = []

        async def backend_read(op):
            events.append(("handler", op.metadata.get("pre")))
            return {"id": 1}

        backend = AsyncMock()
        backend.read.side_effect = backend_read

        def pre(op):
            events.append(("pre", None))
            return op.with_metadata(pre=True)

        def post(op):
            events.append(("post", op.value))
            return op

        registry = CapabilityRegistry()
        registry.register_backend("mock", backend)
        resource = Resource(
            {"key": "widgets", "backend": "mock", "pre": [{"op": "read", "fn": pre}], "post": [{"op": "read", "fn": post}]},
            capabilities=registry,
        )

        await resource.read(make_operation(resource, "read", id="1"))

        assert events == [("pre", None), ("handler", True), ("post", {"id": 1})]

    @pytest.mark.asyncio
    async def test_dispatch_uses_operation_kind(self, make_resource, make_operation, memory_backend):
        resource = make_resource()
        created = await resource.dispatch(make_operation(resource, "create", payload={"name": "x"}))

        listed = await resource.dispatch(make_operation(resource, "list"))

        assert created.value == {"name": "x", "id": 1}
        assert listed.value == [{"name": "x", "id": 1}]

    @pytest.mark.asyncio
    async def test_method_rejects_other_kind(self, make_resource, make_operation):
        resource = make_resource()
        with pytest.raises(ValueError):
            await resource.read(make_operation(resource, "list"))

    def test_operations_table_covers_every_kind(self, make_resource):
        resource = make_resource()
        assert set(resource.operations) == set(OperationKind)

    @pytest.mark.asyncio
    async def test_handler_override_replaces_default(self, make_resource, make_operation):
        async def fixed(op, default):
            return op.with_result({"id": op.id, "source": "override"})

        resource = make_resource(handlers={"read": fixed})

        result = await resource.read(make_operation(resource, "read", id="9"))

        assert result.value == {"id": "9", "source": "override"}

    @pytest.mark.asyncio
    async def test_handler_override_can_call_default(self, make_resource, make_operation):
        resource_calls = []

        async def wrapped(op, default):
            resource_calls.append("before")
            op = await default(op)
            return op.with_result({"wrapped": op.value})

        resource = make_resource(handlers={"create": wrapped})

        result = await resource.create(make_operation(resource, "create", payload={"name": "x"}))

        assert resource_calls == ["before"]
        assert result.value == {"wrapped": {"name": "x", "id": 1}}

    @pytest.mark.asyncio
    async def test_sync_handler_override(self, make_resource, make_operation):
        resource = make_resource(handlers={"list": lambda op, default: op.with_result(["static"])})

        result = await resource.list(make_operation(resource, "list"))

        assert result.value == ["static"]

    @pytest.mark.asyncio
    async def test_handler_override_bad_return(self, make_resource, make_operation):
        resource = make_resource(handlers={"list": lambda op, default: ["not an op"]})

        with pytest.raises(HookError):
            await resource.list(make_operation(resource, "list"))


# =============================================================================
# Default handlers
# =============================================================================


class TestDefaultHandlers:
    """Tests for the default backend handlers."""

    def _resource(self, backend, **declaration):
        registry = CapabilityRegistry()
        registry.register_backend("mock", backend)
        schema = declaration.pop("schema_definition", None)
        if schema is not None:
            registry.register_schema("widgets", schema)
        return Resource({"key": "widgets", "backend": "mock", **declaration}, capabilities=registry)

    @pytest.mark.asyncio
    async def test_read_assigns_backend_value(self, make_operation):
        backend = AsyncMock()
        backend.read.return_value = {"id": 7}
        resource = self._resource(backend)
        op = make_operation(resource, "read", id="7")

        result = await resource.read(op)

        backend.read.assert_awaited_once()
        assert backend.read.await_args.args[0].id == "7"
        assert result.value == {"id": 7}
        assert op.result is None  # input operation untouched

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", ["list", "update", "patch", "remove"])
    async def test_other_handlers_call_matching_method(self, kind, make_operation):
        backend = AsyncMock()
        getattr(backend, kind).return_value = {"kind": kind}
        resource = self._resource(backend)

        result = await resource.dispatch(make_operation(resource, kind, id="1", payload={}))

        getattr(backend, kind).assert_awaited_once()
        assert result.value == {"kind": kind}

    @pytest.mark.asyncio
    async def test_create_success_returns_inserted_record(self, make_operation):
        backend = AsyncMock()
        backend.create.return_value = {
            "result": {"ok": True},
            "insertedCount": 1,
            "ops": [{"id": 1, "name": "x"}],
        }
        resource = self._resource(backend)
        op = make_operation(resource, "create", payload={"name": "x"})

        result = await resource.create(op)

        assert result.value == {"id": 1, "name": "x"}
        assert result.response.status_code == 201

    @pytest.mark.asyncio
    async def test_create_not_ok_returns_raw_result(self, make_operation):
        backend = AsyncMock()
        backend.create.return_value = {"result": {"ok": False}}
        resource = self._resource(backend)

        result = await resource.create(make_operation(resource, "create", payload={"name": "x"}))

        assert result.value == {"ok": False}
        assert result.response.status_code == 200

    @pytest.mark.asyncio
    async def test_create_multi_insert_is_not_success(self, make_operation):
        backend = AsyncMock()
        backend.create.return_value = {
            "result": {"ok": True},
            "insertedCount": 2,
            "ops": [{"id": 1}, {"id": 2}],
        }
        resource = self._resource(backend)

        result = await resource.create(make_operation(resource, "create", payload=[{}, {}]))

        assert result.value == {"ok": True}
        assert result.response.status_code == 200

    @pytest.mark.asyncio
    async def test_create_invalid_record_logged_not_blocking(self, make_operation, widget_schema, caplog):
        backend = AsyncMock()
        backend.create.return_value = {
            "result": {"ok": True},
            "insertedCount": 1,
            "ops": [{"id": 1, "size": -1}],
        }
        resource = self._resource(backend, schema="widgets", schema_definition=widget_schema)

        with caplog.at_level(logging.DEBUG):
            result = await resource.create(make_operation(resource, "create", payload={}))

        assert result.value == {"id": 1, "size": -1}
        assert result.response.status_code == 201
        assert "does not match its schema" in caplog.text
        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]

    @pytest.mark.asyncio
    async def test_backend_failure_without_status_propagates(self, make_operation):
        backend = AsyncMock()
        backend.read.side_effect = ConnectionError("db down")
        resource = self._resource(backend)

        with pytest.raises(ConnectionError, match="db down"):
            await resource.read(make_operation(resource, "read", id="1"))

    @pytest.mark.asyncio
    async def test_backend_status_code_kept(self, make_operation):
        from rested.resource import BackendError

        class Conflict(Exception):
            status_code = 409

        backend = AsyncMock()
        backend.update.side_effect = Conflict("version mismatch")
        resource = self._resource(backend)

        with pytest.raises(BackendError) as exc_info:
            await resource.update(make_operation(resource, "update", id="1", payload={}))

        assert exc_info.value.status_code == 409


class TestGetSchema:
    """Tests for Resource.get_schema()."""

    @pytest.mark.asyncio
    async def test_returns_validator(self, make_resource):
        resource = make_resource(schema="widgets")

        validator = await resource.get_schema(OperationKind.CREATE)

        assert validator.validate({"name": "x"}) is True
        assert validator.validate({}) is False

    @pytest.mark.asyncio
    async def test_patch_ignores_required(self, make_resource):
        resource = make_resource(schema="widgets")

        validator = await resource.get_schema("patch")

        assert validator.validate({"size": 2}) is True
        assert validator.validate({"size": -2}) is False

    @pytest.mark.asyncio
    async def test_no_schema_raises(self, make_resource):
        resource = make_resource()
        with pytest.raises(ConfigurationError):
            await resource.get_schema()
