"""
Outcome types for the operation pipeline.

A handler's value is wrapped in Ok; anything raised along the way is turned
into an Err by the error-handler stage. Keeping the two apart removes any
guessing about which failures carry an HTTP status.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import RestError

GENERIC_ERROR_MESSAGE = "general.error"


@dataclass(frozen=True, slots=True)
class Ok:
    """Successful handler outcome."""

    value: Any = None

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Err:
    """
    Failed outcome, ready to be rendered.

    Attributes:
        kind: Error family (validation, backend, configuration, http, internal...)
        http_status: Status code of the response
        message: Message returned to the caller
        details: Optional structured details
        classified: False when the error carried no status of its own
    """

    kind: str
    http_status: int
    message: str
    details: Any = None
    classified: bool = True

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.http_status < 500

    def to_body(self) -> dict[str, Any]:
        return {"message": self.message, "details": self.details}

    @classmethod
    def from_exception(cls, exc: BaseException, *, expose_message: bool = False) -> "Err":
        """
        Classify an exception.

        Args:
            exc: The exception raised by a stage, hook or handler
            expose_message: Return the text of unclassified errors instead of
                the generic message

        Returns:
            Err describing the response to send
        """
        if isinstance(exc, RestError) and exc.status_code is not None:
            return cls(
                kind=exc.kind,
                http_status=exc.status_code,
                message=exc.message,
                details=exc.details,
            )

        # Duck-typed errors from other libraries (HTTPException and friends)
        status = getattr(exc, "status_code", None)
        if isinstance(status, int) and not isinstance(status, bool):
            message = getattr(exc, "message", None) or getattr(exc, "detail", None) or str(exc)
            return cls(
                kind="http",
                http_status=status,
                message=str(message),
                details=getattr(exc, "details", None),
            )

        message = GENERIC_ERROR_MESSAGE
        if expose_message and str(exc):
            message = str(exc)
        return cls(
            kind="internal",
            http_status=500,
            message=message,
            classified=False,
        )
