"""
Tests for endpoint descriptors and the endpoint registry.
"""

import pytest
from fastapi import FastAPI

from rested.config import AppSettings
from rested.pipeline import (
    BodyParserStage,
    DispatchStage,
    PayloadValidationStage,
    RenderStage,
    SetupStage,
)
from rested.resource import OperationKind
from rested.runtime import EndpointRegistry


class TestBuildEndpoints:
    """Tests for Resource.endpoints() / build_endpoints()."""

    @pytest.mark.asyncio
    async def test_six_descriptors(self, make_resource):
        descriptors = await make_resource().endpoints()

        assert [(d.kind.value, d.method, d.path) for d in descriptors] == [
            ("read", "GET", "/widgets/:id"),
            ("list", "GET", "/widgets"),
            ("create", "POST", "/widgets"),
            ("update", "PUT", "/widgets/:id"),
            ("patch", "PATCH", "/widgets/:id"),
            ("remove", "DELETE", "/widgets/:id"),
        ]
        assert {d.key for d in descriptors} == {"widgets"}

    @pytest.mark.asyncio
    async def test_path_overrides_key(self, make_resource):
        resource = make_resource(path="/things/")

        paths = {d.path for d in await resource.endpoints()}

        assert paths == {"/things", "/things/:id"}

    @pytest.mark.asyncio
    async def test_prefix_applies_to_route_path(self, make_resource):
        settings = AppSettings(api_prefix="api/")

        descriptors = await make_resource().endpoints(settings)

        read = descriptors[0]
        assert read.path == "/widgets/:id"
        assert read.route_path == "/api/widgets/{id}"
        assert read.route_key == ("GET", "/api/widgets/{id}")

    @pytest.mark.asyncio
    async def test_stage_composition_without_schema(self, make_resource):
        descriptors = {d.kind: d for d in await make_resource().endpoints()}

        read_stages = [type(s) for s in descriptors[OperationKind.READ].stages]
        create_stages = [type(s) for s in descriptors[OperationKind.CREATE].stages]

        assert read_stages == [SetupStage, DispatchStage, RenderStage]
        assert create_stages == [BodyParserStage, SetupStage, DispatchStage, RenderStage]

    @pytest.mark.asyncio
    async def test_stage_composition_with_schema(self, make_resource):
        descriptors = {d.kind: d for d in await make_resource(schema="widgets").endpoints()}

        for kind in (OperationKind.CREATE, OperationKind.UPDATE, OperationKind.PATCH):
            assert [type(s) for s in descriptors[kind].stages] == [
                BodyParserStage,
                SetupStage,
                PayloadValidationStage,
                DispatchStage,
                RenderStage,
            ]
        assert PayloadValidationStage not in [type(s) for s in descriptors[OperationKind.REMOVE].stages]

    @pytest.mark.asyncio
    async def test_to_dict(self, make_resource):
        descriptors = await make_resource().endpoints()

        data = descriptors[1].to_dict()

        assert data["operation"] == "list"
        assert data["stages"] == ["setup_list", "dispatch", "render"]


class TestEndpointRegistry:
    """Tests for EndpointRegistry."""

    @pytest.mark.asyncio
    async def test_register_mounts_routes(self, make_resource):
        app = FastAPI()
        registry = EndpointRegistry(app)

        count = registry.register(await make_resource().endpoints())

        assert count == 6
        assert registry.has("get", "/widgets/{id}")
        assert registry.has("DELETE", "/widgets/{id}")
        paths = {route.path for route in app.routes}
        assert {"/widgets", "/widgets/{id}"} <= paths

    @pytest.mark.asyncio
    async def test_register_replaces_duplicates(self, make_resource, caplog):
        app = FastAPI()
        registry = EndpointRegistry(app)
        registry.register(await make_resource().endpoints())
        before = len(app.routes)

        registry.register(await make_resource().endpoints())

        assert len(app.routes) == before
        assert "Replacing existing route" in caplog.text

    @pytest.mark.asyncio
    async def test_unregister_removes_routes(self, make_resource):
        app = FastAPI()
        registry = EndpointRegistry(app)
        descriptors = await make_resource().endpoints()
        registry.register(descriptors)

        removed = registry.unregister(descriptors)

        assert removed == 6
        assert registry.registered == []
        assert "/widgets" not in {route.path for route in app.routes}

    @pytest.mark.asyncio
    async def test_clear(self, make_resource):
        app = FastAPI()
        registry = EndpointRegistry(app)
        registry.register(await make_resource().endpoints())
        registry.register(await make_resource(key="gadgets").endpoints())

        registry.clear()

        assert registry.registered == []
