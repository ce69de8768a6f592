"""
Pipeline Stages for Rested.

Every endpoint runs a fixed chain of stages over a RequestContext:

    [BodyParser] -> Setup -> [PayloadValidation] -> Dispatch -> Render

and hands anything they raise to the ErrorHandler.

Stage roles:
- BodyParserStage: parse the JSON body into ctx.payload
- SetupStage: build the Operation for the route's operation kind
- PayloadValidationStage: check the payload against the resource schema
- DispatchStage: run the resource operation (hooks + handler)
- RenderStage: turn the operation result into an HTTP response
- ErrorHandlerStage: map errors to HTTP responses
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from fastapi.encoders import jsonable_encoder
from starlette.responses import JSONResponse, PlainTextResponse, Response

from rested.resource.errors import ValidationError
from rested.resource.operation import Operation, OperationKind
from rested.resource.result import Err

if TYPE_CHECKING:
    from rested.config import AppSettings
    from rested.resource.resource import Resource

    from .context import RequestContext

logger = logging.getLogger(__name__)


class Stage(ABC):
    """
    Base class for endpoint stages.

    Stages read and update the RequestContext; raising stops the chain
    and hands the error to the ErrorHandlerStage.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this stage, used in logging and timings."""
        ...

    @abstractmethod
    async def run(self, ctx: RequestContext) -> None:
        """Run the stage against the request context."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"


class BodyParserStage(Stage):
    """Parses the JSON request body into ctx.payload. An empty body is {}."""

    @property
    def name(self) -> str:
        return "body_parser"

    async def run(self, ctx: RequestContext) -> None:
        if ctx.request is None:
            return
        body = await ctx.request.body()
        if not body.strip():
            ctx.payload = {}
            return
        try:
            ctx.payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValidationError("invalid.json", details=[str(e)]) from e


class SetupStage(Stage):
    """
    Builds the Operation for one operation kind.

    Tags the context with the kind so later stages (payload validation)
    know which operation they serve.
    """

    def __init__(self, resource: Resource, kind: OperationKind):
        self.resource = resource
        self.kind = kind

    @property
    def name(self) -> str:
        return f"setup_{self.kind.value}"

    async def run(self, ctx: RequestContext) -> None:
        identifier = ctx.path_params.get("id") if self.kind.requires_id else None
        ctx.op_kind = self.kind
        ctx.operation = Operation(
            resource=self.resource,
            kind=self.kind,
            request=ctx.request,
            response=ctx.response,
            id=str(identifier) if identifier is not None else None,
            payload=ctx.payload if self.kind.has_payload else None,
        )


class PayloadValidationStage(Stage):
    """Checks the operation payload against the resource schema."""

    def __init__(self, resource: Resource):
        self.resource = resource

    @property
    def name(self) -> str:
        return "validate_payload"

    async def run(self, ctx: RequestContext) -> None:
        operation = ctx.operation
        if operation is None or not operation.kind.has_payload:
            return

        validator = await self.resource.get_schema(operation.kind)
        if not validator.validate(operation.payload):
            logger.debug(
                f"Invalid {self.resource.key}.{operation.key} payload: {validator.errors}"
            )
            raise ValidationError(
                f"{self.resource.key}.{operation.key}.invalid",
                details=validator.errors,
            )


class DispatchStage(Stage):
    """
    Runs the resource operation matching the context's Operation.

    Passes through when there is no Operation or the resource exposes no
    method for its kind.
    """

    def __init__(self, resource: Resource):
        self.resource = resource

    @property
    def name(self) -> str:
        return "dispatch"

    async def run(self, ctx: RequestContext) -> None:
        if ctx.operation is None:
            return
        handled = await self.resource.dispatch(ctx.operation)
        if handled is not None:
            ctx.operation = handled


def _is_absent(value: Any) -> bool:
    """
    Whether a result means "not found".

    Empty scalars (None, False, 0, NaN, "") are absent. Containers are
    always present, so an empty list or object still renders as JSON.
    """
    if value is None or value is False or value == "":
        return True
    if isinstance(value, (int, float)):
        return value == 0 or value != value
    return False


class RenderStage(Stage):
    """
    Renders the operation result.

    - No result set: empty body with the current status
    - Present value: JSON body with the current status (200, or 201 on create)
    - Empty scalar (None, False, 0, ""): 404 with "{resource}.{id}.not.found",
      or "{resource}.not.found" for kinds without an id
    """

    @property
    def name(self) -> str:
        return "render"

    async def run(self, ctx: RequestContext) -> None:
        operation = ctx.operation
        headers = dict(ctx.response.headers)

        if operation is None or operation.result is None:
            ctx.rendered = Response(status_code=ctx.response.status_code, headers=headers)
            return

        value = operation.result.value
        if _is_absent(value):
            target = operation.resource.key
            if operation.id is not None:
                target = f"{target}.{operation.id}"
            ctx.rendered = PlainTextResponse(
                f"{target}.not.found",
                status_code=404,
                headers=headers,
            )
            return

        ctx.rendered = JSONResponse(
            jsonable_encoder(value),
            status_code=ctx.response.status_code,
            headers=headers,
        )


class ErrorHandlerStage:
    """
    Terminal error stage of every chain.

    Errors carrying a status are answered with {"message", "details"} and
    that status. Anything else becomes a plain-text 500. Every error is
    logged at error level, except 400s which are expected client mistakes.
    """

    def __init__(self, settings: AppSettings | None = None):
        self.expose_internal_errors = bool(settings and settings.expose_internal_errors)

    @property
    def name(self) -> str:
        return "error_handler"

    def handle(self, ctx: RequestContext, exc: BaseException) -> Response:
        err = Err.from_exception(exc, expose_message=self.expose_internal_errors)

        if err.http_status != 400:
            logger.error(
                f"rest-error: {_describe(ctx)} failed with {err.http_status} "
                f"({type(exc).__name__}: {exc})",
                exc_info=exc,
            )

        if err.classified:
            response: Response = JSONResponse(err.to_body(), status_code=err.http_status)
        else:
            response = PlainTextResponse(err.message, status_code=500)
        ctx.rendered = response
        return response

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"


def _describe(ctx: RequestContext) -> str:
    if ctx.operation is not None:
        return f"{ctx.operation.resource.key}.{ctx.operation.key}"
    if ctx.request is not None:
        return f"{ctx.request.method} {ctx.request.url.path}"
    return "request"
