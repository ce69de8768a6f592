"""
Configuration Schemas for Rested.

Pydantic model for application settings. Resource declarations live in
rested.resource.spec.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class AppSettings(BaseModel):
    """
    Application settings model.

    Used for type-safe settings access. Populated from RESTED_* environment
    variables by rested.app.dependencies.get_settings().
    """

    # Service identity
    service_name: str = "rested"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # HTTP surface
    api_prefix: str = Field(default="", description="Prefix for every resource route")
    expose_internal_errors: bool = Field(
        default=False,
        description="Return the text of unclassified errors instead of general.error",
    )

    # Resource discovery
    resource_modules: list[str] = Field(
        default_factory=list,
        description="Modules exposing RESOURCE or RESOURCES declarations",
    )
    resource_dir: str | None = Field(
        default=None,
        description="Directory of *.resource.json / *.resource.yaml declarations",
    )

    @field_validator("api_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if value and not value.startswith("/"):
            value = "/" + value
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()
