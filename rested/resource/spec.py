"""
Resource declaration schemas for Rested.

Pydantic models describing one REST resource: its backend, its schema,
its hooks and its handler overrides.

Declarations are strict: unknown fields are rejected instead of being
silently adopted, and callables (hooks, handler overrides) may be given
either as objects or as "package.module:attribute" import strings, which
makes the same schema usable from Python modules and JSON files.
"""

from __future__ import annotations

import importlib
import re
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from .hooks import DEFAULT_PRIORITY, Hook, HookPhase
from .operation import OperationKind

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.~-]+$")


def import_callable(value: Any) -> Any:
    """
    Resolve a "module:attribute" string to the object it names.

    Non-string values are returned unchanged. Raises ValueError when the
    import fails or the target is not callable.
    """
    if not isinstance(value, str):
        if not callable(value):
            raise ValueError(f"expected a callable, got {type(value).__name__}")
        return value

    module_name, sep, attr_path = value.partition(":")
    if not sep or not module_name or not attr_path:
        raise ValueError(f"'{value}' is not a 'module:attribute' reference")

    try:
        target: Any = importlib.import_module(module_name)
        for attr in attr_path.split("."):
            target = getattr(target, attr)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"cannot import '{value}': {e}") from e

    if not callable(target):
        raise ValueError(f"'{value}' is not callable")
    return target


class BackendRef(BaseModel):
    """Backend reference with backend-specific configuration."""

    ref: str = Field(..., min_length=1, description="Backend key in the capability registry")
    config: dict[str, Any] = Field(default_factory=dict, description="Passed to backend factories")

    class Config:
        extra = "forbid"


class SchemaRef(BaseModel):
    """Schema reference; config is kept for schema providers that need it."""

    ref: str = Field(..., min_length=1, description="Schema key in the capability registry")
    config: dict[str, Any] = Field(default_factory=dict)

    class Config:
        extra = "forbid"


class HookSpec(BaseModel):
    """
    Declaration of one hook.

    Example:
        {"op": "create", "priority": 1, "fn": "myapp.hooks:stamp_owner"}
    """

    op: OperationKind = Field(..., description="Operation kind the hook applies to")
    fn: Any = Field(..., description="Hook callable or 'module:attribute' string")
    priority: int = Field(DEFAULT_PRIORITY, description="Lower runs first")

    class Config:
        extra = "forbid"

    @field_validator("op", mode="before")
    @classmethod
    def _parse_op(cls, value: Any) -> OperationKind:
        return OperationKind.parse(value)

    @field_validator("priority", mode="before")
    @classmethod
    def _default_priority(cls, value: Any) -> Any:
        # null priority means "unset"
        return DEFAULT_PRIORITY if value is None else value

    @field_validator("fn", mode="before")
    @classmethod
    def _resolve_fn(cls, value: Any) -> Any:
        return import_callable(value)

    def to_hook(self) -> Hook:
        return Hook(op=self.op, fn=self.fn, priority=self.priority)


class HooksSpec(BaseModel):
    """Hooks grouped by lifecycle phase, in declaration order."""

    pre: list[HookSpec] = Field(default_factory=list)
    post: list[HookSpec] = Field(default_factory=list)

    class Config:
        extra = "forbid"

    def for_phase(self, phase: HookPhase) -> list[Hook]:
        specs = self.pre if phase == HookPhase.PRE else self.post
        return [spec.to_hook() for spec in specs]


class ResourceSpec(BaseModel):
    """
    Declarative description of one REST resource.

    Attributes:
        key: Unique identifier, also the default URL segment
        path: Optional URL segment overriding key
        backend: Backend key, or {"ref": key, "config": {...}}
        schema_ref: Schema key (alias "schema"), or {"ref": key, "config": {...}}
        hooks: Pre/post hooks; top-level "pre"/"post" lists are accepted too
        handlers: Handler overrides keyed by operation kind

    Example:
        ResourceSpec.model_validate({
            "key": "widgets",
            "backend": {"ref": "memory", "config": {"collection": "widgets"}},
            "schema": "widgets",
            "pre": [{"op": "create", "fn": "myapp.hooks:stamp_owner"}],
        })
    """

    key: str = Field(..., description="Resource identifier and default URL segment")
    path: str | None = Field(None, description="URL segment override")
    backend: str | BackendRef = Field(..., description="Backend reference")
    schema_ref: str | SchemaRef | None = Field(None, alias="schema", description="Schema reference")
    hooks: HooksSpec = Field(default_factory=HooksSpec)
    handlers: dict[OperationKind, Any] = Field(default_factory=dict)
    description: str = Field("", description="Human-readable description")

    class Config:
        extra = "forbid"
        populate_by_name = True

    @model_validator(mode="before")
    @classmethod
    def _lift_phase_hooks(cls, data: Any) -> Any:
        """Accept top-level "pre"/"post" lists as shorthand for hooks."""
        if not isinstance(data, dict) or not ({"pre", "post"} & data.keys()):
            return data
        data = dict(data)
        hooks = dict(data.get("hooks") or {})
        for phase in ("pre", "post"):
            if phase in data:
                hooks[phase] = [*hooks.get(phase, []), *data.pop(phase)]
        data["hooks"] = hooks
        return data

    @field_validator("key")
    @classmethod
    def _check_key(cls, value: str) -> str:
        if not _KEY_PATTERN.match(value):
            raise ValueError(f"resource key '{value}' is not a valid URL segment")
        return value

    @field_validator("path")
    @classmethod
    def _strip_path(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip("/")
        return value or None

    @field_validator("handlers", mode="before")
    @classmethod
    def _resolve_handlers(cls, value: Any) -> Any:
        if not value:
            return {}
        return {
            OperationKind.parse(kind): import_callable(handler)
            for kind, handler in dict(value).items()
        }

    @property
    def backend_key(self) -> str:
        return self.backend.ref if isinstance(self.backend, BackendRef) else self.backend

    @property
    def backend_config(self) -> dict[str, Any]:
        return dict(self.backend.config) if isinstance(self.backend, BackendRef) else {}

    @property
    def schema_key(self) -> str | None:
        if isinstance(self.schema_ref, SchemaRef):
            return self.schema_ref.ref
        return self.schema_ref

    @property
    def url_segment(self) -> str:
        return self.path or self.key
