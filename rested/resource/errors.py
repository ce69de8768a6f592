"""
Error taxonomy for Rested.

Every error the operation pipeline raises on purpose derives from RestError
and carries the HTTP status it maps to. Errors without a status are treated
as unclassified by the error-handler stage and reported as 500.
"""

from __future__ import annotations

from typing import Any


class RestError(Exception):
    """
    Base class for pipeline errors.

    Attributes:
        status_code: HTTP status this error maps to (None = unclassified)
        message: Human-readable message, safe to return to the caller
        details: Optional structured details (validation messages, etc.)
    """

    default_status: int | None = None
    kind: str = "rest"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: Any = None,
    ):
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status
        self.details = details
        super().__init__(message)


class ConfigurationError(RestError):
    """
    Raised when a resource cannot be resolved.

    Covers unknown backend or schema references, resolver failures and
    invalid resource declarations. Fatal for the resource concerned.
    """

    default_status = 500
    kind = "configuration"


class ResourceNotReadyError(ConfigurationError):
    """Raised when an operation targets a resource whose initialization failed."""

    def __init__(self, resource_key: str, cause: BaseException | None = None):
        self.resource_key = resource_key
        self.cause = cause
        reason = f": {cause}" if cause is not None else ""
        super().__init__(f"resource '{resource_key}' failed to initialize{reason}")


class ValidationError(RestError):
    """Raised when a payload fails its schema check."""

    default_status = 400
    kind = "validation"


class BackendError(RestError):
    """Raised when a backend capability call fails."""

    default_status = 500
    kind = "backend"

    @staticmethod
    def status_of(exc: BaseException) -> int | None:
        """The integer HTTP status an exception carries, if any."""
        status = getattr(exc, "status_code", None)
        if isinstance(status, bool) or not isinstance(status, int):
            return None
        return status

    @classmethod
    def wrap(cls, exc: Exception, operation_key: str) -> "BackendError":
        """Wrap a backend exception that carries an HTTP status."""
        status = cls.status_of(exc)
        return cls(
            str(exc) or f"backend.{operation_key}.failed",
            status_code=status,
            details=getattr(exc, "details", None),
        )


class HookError(RestError):
    """Raised when a hook or handler override returns something unusable."""

    default_status = 500
    kind = "hook"
