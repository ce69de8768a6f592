"""
Rested Pipeline

Per-request stage chains synthesized for each resource endpoint.

Core Components:
- RequestContext: Request-scoped state shared by the stages
- Stage: Single-responsibility step (setup, validation, dispatch, render)
- StageChain: Sequential executor with a terminal error handler
- EndpointDescriptor: (method, path, chain) triple for the HTTP layer
"""

from .chain import StageChain
from .context import RequestContext
from .endpoints import HTTP_METHODS, EndpointDescriptor, build_endpoints, build_stages
from .stages import (
    BodyParserStage,
    DispatchStage,
    ErrorHandlerStage,
    PayloadValidationStage,
    RenderStage,
    SetupStage,
    Stage,
)

__all__ = [
    # Core
    "RequestContext",
    "StageChain",
    # Stages
    "Stage",
    "BodyParserStage",
    "SetupStage",
    "PayloadValidationStage",
    "DispatchStage",
    "RenderStage",
    "ErrorHandlerStage",
    # Endpoints
    "EndpointDescriptor",
    "HTTP_METHODS",
    "build_endpoints",
    "build_stages",
]
