"""
Endpoint Descriptor Builder for Rested.

Turns one resource into the six route descriptors handed to the HTTP
layer. For a resource with key "widgets":

    read    GET     /widgets/:id
    list    GET     /widgets
    create  POST    /widgets
    update  PUT     /widgets/:id
    patch   PATCH   /widgets/:id
    remove  DELETE  /widgets/:id

The path segment is the resource's path when declared, its key otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from rested.resource.operation import OperationKind

from .chain import StageChain
from .stages import (
    BodyParserStage,
    DispatchStage,
    ErrorHandlerStage,
    PayloadValidationStage,
    RenderStage,
    SetupStage,
    Stage,
)

if TYPE_CHECKING:
    from rested.config import AppSettings
    from rested.resource.resource import Resource

HTTP_METHODS: dict[OperationKind, str] = {
    OperationKind.READ: "GET",
    OperationKind.LIST: "GET",
    OperationKind.CREATE: "POST",
    OperationKind.UPDATE: "PUT",
    OperationKind.PATCH: "PATCH",
    OperationKind.REMOVE: "DELETE",
}


@dataclass(frozen=True)
class EndpointDescriptor:
    """
    One route of a resource.

    Attributes:
        key: Resource key
        kind: Operation kind served by the route
        method: HTTP method
        path: Route path with ':id' placeholders
        chain: Stage chain executed for each request
        prefix: Prefix prepended when registering the route
    """

    key: str
    kind: OperationKind
    method: str
    path: str
    chain: StageChain
    prefix: str = ""

    @property
    def route_path(self) -> str:
        """Path in FastAPI syntax, e.g. '/api/widgets/{id}'."""
        return self.prefix + self.path.replace(":id", "{id}")

    @property
    def route_key(self) -> tuple[str, str]:
        return (self.method, self.route_path)

    @property
    def stages(self) -> list[Stage]:
        return self.chain.stages

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "operation": self.kind.value,
            "method": self.method,
            "path": self.path,
            "route_path": self.route_path,
            "stages": self.chain.stage_names,
        }


def build_stages(resource: Resource, kind: OperationKind) -> list[Stage]:
    """Stage list for one operation kind of a resource."""
    stages: list[Stage] = []
    if kind.has_payload:
        stages.append(BodyParserStage())
    stages.append(SetupStage(resource, kind))
    if kind.has_payload and resource.has_schema:
        stages.append(PayloadValidationStage(resource))
    stages.append(DispatchStage(resource))
    stages.append(RenderStage())
    return stages


def build_endpoints(
    resource: Resource,
    settings: AppSettings | None = None,
) -> list[EndpointDescriptor]:
    """
    Build the six endpoint descriptors of a resource.

    Args:
        resource: An initialized resource
        settings: Application settings (route prefix, error exposure)

    Returns:
        Descriptors in read, list, create, update, patch, remove order
    """
    collection = resource.url_path
    prefix = settings.api_prefix if settings is not None else ""
    error_handler = ErrorHandlerStage(settings)

    descriptors = []
    for kind in OperationKind:
        path = f"{collection}/:id" if kind.requires_id else collection
        descriptors.append(
            EndpointDescriptor(
                key=resource.key,
                kind=kind,
                method=HTTP_METHODS[kind],
                path=path,
                chain=StageChain(build_stages(resource, kind), error_handler),
                prefix=prefix,
            )
        )
    return descriptors
