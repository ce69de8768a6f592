"""
Request Context for Rested.

The context carries request-scoped state through the stages of one
endpoint's chain: the inbound request, the response handle, the parsed
payload and the Operation built by the setup stage.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from rested.resource.operation import ResponseHandle

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

    from rested.resource.operation import Operation, OperationKind


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RequestContext:
    """
    Request-scoped context passed to every stage.

    Provides:
    - Unique execution ID for tracing
    - The inbound request and its path parameters
    - The response handle shared with the Operation
    - The Operation once the setup stage has built it
    - Per-stage timings
    """

    # Execution identification
    execution_id: UUID = field(default_factory=uuid4)
    started_at: datetime = field(default_factory=_utc_now)

    # HTTP handles (owned by the transport)
    request: Request | None = None
    response: ResponseHandle = field(default_factory=ResponseHandle)
    path_params: dict[str, Any] = field(default_factory=dict)

    # Populated by stages
    op_kind: OperationKind | None = None
    payload: Any = None
    operation: Operation | None = None
    rendered: Response | None = None

    # Audit trail
    stage_timings: dict[str, float] = field(default_factory=dict)

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since the chain started."""
        delta = datetime.now(timezone.utc) - self.started_at
        return delta.total_seconds() * 1000

    def record_timing(self, stage_name: str, duration_ms: float) -> None:
        """Record stage execution timing."""
        self.stage_timings[stage_name] = duration_ms

    def to_audit_dict(self) -> dict[str, Any]:
        """Summary for logging."""
        return {
            "execution_id": str(self.execution_id),
            "started_at": self.started_at.isoformat(),
            "duration_ms": self.elapsed_ms,
            "operation": self.op_kind.value if self.op_kind else None,
            "resource": self.operation.resource.key if self.operation else None,
            "status_code": self.rendered.status_code if self.rendered else None,
            "stage_timings": self.stage_timings,
        }
