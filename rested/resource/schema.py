"""
JSON Schema validation for resource payloads and stored records.
"""

from __future__ import annotations

import logging
from typing import Any

import jsonschema
from jsonschema.exceptions import SchemaError

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class JsonSchemaValidator:
    """
    Validator for one schema definition.

    validate() returns a boolean and keeps the messages of the last run in
    `errors`, so callers can decide whether a failure is fatal.

    Example:
        validator = JsonSchemaValidator({"type": "object", "required": ["name"]})
        if not validator.validate(payload):
            raise ValidationError("payload.invalid", details=validator.errors)
    """

    def __init__(self, definition: dict[str, Any], *, partial: bool = False):
        """
        Args:
            definition: JSON Schema document
            partial: Ignore top-level "required" (for PATCH payloads)
        """
        if partial and isinstance(definition, dict) and "required" in definition:
            definition = {k: v for k, v in definition.items() if k != "required"}

        self.definition = definition
        self.partial = partial
        self._errors: list[str] = []

        try:
            validator_class = jsonschema.validators.validator_for(definition)
            validator_class.check_schema(definition)
        except SchemaError as e:
            raise ConfigurationError(f"invalid schema definition: {e.message}") from e

        self._validator = validator_class(definition)

    @property
    def errors(self) -> list[str]:
        """Messages from the last validate() call."""
        return list(self._errors)

    def validate(self, value: Any) -> bool:
        found = sorted(
            self._validator.iter_errors(value),
            key=lambda e: [str(p) for p in e.path],
        )
        self._errors = [_format_error(error) for error in found]
        return not self._errors

    def __repr__(self) -> str:
        title = self.definition.get("title", "") if isinstance(self.definition, dict) else ""
        return f"JsonSchemaValidator(title={title!r}, partial={self.partial})"


def _format_error(error: jsonschema.ValidationError) -> str:
    location = ".".join(str(p) for p in error.path)
    return f"{location}: {error.message}" if location else error.message
