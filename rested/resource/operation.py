"""
Operation context for Rested.

An Operation is the per-request value threaded through the pipeline:
setup stage -> pre-hooks -> handler -> post-hooks -> render stage.

Operations are immutable. Hooks and handlers return an updated copy via
derive() / with_result() instead of mutating the one they received, so
each step of the fold sees exactly the value the previous step produced.
The response handle is the one mutable piece: it belongs to the HTTP layer
and is shared by every copy of the operation.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from .result import Ok

if TYPE_CHECKING:
    from .resource import Resource


class OperationKind(str, Enum):
    """The six CRUD operations a resource exposes."""

    READ = "read"
    LIST = "list"
    CREATE = "create"
    UPDATE = "update"
    PATCH = "patch"
    REMOVE = "remove"

    @property
    def requires_id(self) -> bool:
        """Whether the route carries an instance identifier."""
        return self in _ID_KINDS

    @property
    def has_payload(self) -> bool:
        """Whether the request body is parsed into a payload."""
        return self in _PAYLOAD_KINDS

    @classmethod
    def parse(cls, value: "str | OperationKind") -> "OperationKind":
        """Coerce a string such as 'create' into an OperationKind."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = ", ".join(k.value for k in cls)
            raise ValueError(f"Unknown operation '{value}'. Expected one of: {valid}") from None


_ID_KINDS = frozenset(
    {OperationKind.READ, OperationKind.UPDATE, OperationKind.PATCH, OperationKind.REMOVE}
)
_PAYLOAD_KINDS = frozenset({OperationKind.CREATE, OperationKind.UPDATE, OperationKind.PATCH})


@dataclass
class ResponseHandle:
    """
    Outbound response state shared by every copy of an Operation.

    Handlers use it to pick the status code (create sets 201); the render
    stage turns it into the actual HTTP response.
    """

    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)

    def status(self, code: int) -> "ResponseHandle":
        self.status_code = code
        return self


@dataclass(frozen=True, kw_only=True, slots=True)
class Operation:
    """
    Per-request operation context.

    Attributes:
        resource: Owning resource (shared, not owned)
        kind: Operation type
        request: Inbound request handle (not owned)
        response: Outbound response handle (not owned)
        id: Instance identifier from the route (read/update/patch/remove)
        payload: Parsed body (create/update/patch)
        result: Ok(value) once a handler ran, None before
        metadata: Free-form values hooks can pass along
    """

    resource: Resource
    kind: OperationKind
    request: Any = None
    response: ResponseHandle = field(default_factory=ResponseHandle)
    id: str | None = None
    payload: Any = None
    result: Ok | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    operation_id: UUID = field(default_factory=uuid4)

    @property
    def key(self) -> str:
        """Operation type as a plain string ('read', 'create', ...)."""
        return self.kind.value

    @property
    def has_result(self) -> bool:
        return self.result is not None

    @property
    def value(self) -> Any:
        """The handler's value, or None when no handler ran yet."""
        return self.result.value if self.result is not None else None

    def derive(self, **changes: Any) -> "Operation":
        """
        Create an updated copy of this operation.

        Example:
            op = op.derive(payload={**op.payload, "owner": "me"})

        The copy gets its own metadata dict.
        """
        metadata = changes.pop("metadata", self.metadata)
        return replace(self, metadata=dict(metadata), **changes)

    def with_result(self, value: Any) -> "Operation":
        """Copy of this operation holding Ok(value) as its result."""
        return self.derive(result=Ok(value))

    def with_metadata(self, **extra: Any) -> "Operation":
        return replace(self, metadata={**self.metadata, **extra})

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging."""
        return {
            "operation_id": str(self.operation_id),
            "resource": self.resource.key,
            "kind": self.key,
            "id": self.id,
            "has_payload": self.payload is not None,
            "has_result": self.has_result,
            "status_code": self.response.status_code,
        }

    def __repr__(self) -> str:
        return f"Operation({self.resource.key}.{self.key}, id={self.id!r})"
