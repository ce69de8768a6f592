"""
Stage Chain Executor for Rested.

A StageChain runs the stages of one endpoint in order over a fresh
RequestContext and returns the rendered HTTP response.

Execution Model:
- Stages run sequentially, each awaited before the next starts
- The first exception stops the chain and goes to the error handler
- A chain that renders nothing answers with an empty body
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Sequence

from starlette.requests import Request
from starlette.responses import Response

from .context import RequestContext
from .stages import ErrorHandlerStage, Stage

logger = logging.getLogger(__name__)


class StageChain:
    """
    Ordered stages plus the terminal error handler.

    Example:
        chain = StageChain(
            [SetupStage(resource, OperationKind.READ), DispatchStage(resource), RenderStage()],
            ErrorHandlerStage(settings),
        )
        response = await chain.execute(request)
    """

    def __init__(self, stages: Sequence[Stage], error_handler: ErrorHandlerStage | None = None):
        if not stages:
            raise ValueError("StageChain must have at least one stage")
        self.stages = list(stages)
        self.error_handler = error_handler or ErrorHandlerStage()

    @property
    def stage_names(self) -> list[str]:
        """Get names of all stages in order."""
        return [s.name for s in self.stages]

    async def run(self, ctx: RequestContext) -> Response:
        """Run every stage over an existing context."""
        for stage in self.stages:
            start_time = time.perf_counter()
            try:
                await stage.run(ctx)
            except Exception as e:
                return self.error_handler.handle(ctx, e)
            finally:
                duration_ms = (time.perf_counter() - start_time) * 1000
                ctx.record_timing(stage.name, duration_ms)

        if ctx.rendered is None:
            ctx.rendered = Response(status_code=ctx.response.status_code)

        logger.debug(
            f"Chain complete: execution_id={str(ctx.execution_id)[:8]}..., "
            f"status={ctx.rendered.status_code}, duration={ctx.elapsed_ms:.1f}ms"
        )
        return ctx.rendered

    async def execute(self, request: Request) -> Response:
        """Run the chain for an inbound request."""
        ctx = RequestContext(request=request, path_params=dict(request.path_params))
        return await self.run(ctx)

    def as_endpoint(self) -> Callable[[Request], Awaitable[Response]]:
        """Wrap the chain as a FastAPI/Starlette endpoint."""

        async def endpoint(request: Request) -> Response:
            return await self.execute(request)

        return endpoint

    def __repr__(self) -> str:
        return f"StageChain(stages={self.stage_names})"
