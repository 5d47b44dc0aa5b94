"""
Configuration Schema.

This module provides schema declaration and validation for the loader
settings table.

Key features:
- Type-safe field definitions with constraints
- Validation of a partial table, filling defaults for missing fields
- Length bounds for strings and lists
"""

import copy
from dataclasses import dataclass
from typing import Any


class SchemaError(Exception):
    """Base exception for schema-related errors."""

    pass


class ValidationError(SchemaError):
    """Raised when value validation fails."""

    pass


@dataclass
class ConfigField:
    """
    Represents a configuration field with type and constraints.

    Attributes:
        type_: The expected type of the field value
        default: Default value for the field
        description: Human-readable description
        min: Minimum length (for strings/lists)
        max: Maximum length (for strings/lists)
        choices: List of allowed values (optional)
    """

    type_: type
    default: Any
    description: str = ""
    min: int | None = None
    max: int | None = None
    choices: list[Any] | None = None

    def __post_init__(self):
        if not isinstance(self.default, self.type_):
            raise SchemaError(
                f"Default value {self.default!r} does not match type {self.type_.__name__}"
            )

        if (self.min is not None or self.max is not None) and self.type_ not in (str, list):
            raise SchemaError(
                f"min/max constraints only supported for str and list. Got {self.type_.__name__}"
            )

        if self.choices is not None:
            if not isinstance(self.choices, list):
                raise SchemaError("choices must be a list")
            for choice in self.choices:
                if not isinstance(choice, self.type_):
                    raise SchemaError(f"Choice {choice!r} does not match type {self.type_.__name__}")
            if self.default not in self.choices:
                raise SchemaError(f"Default value {self.default!r} not in choices {self.choices}")

    def validate(self, value: Any) -> None:
        """
        Validate a value against this field's constraints.

        Raises:
            ValidationError: If validation fails
        """
        # bool is an int subclass; keep them apart
        if not isinstance(value, self.type_) or (self.type_ is not bool and isinstance(value, bool)):
            raise ValidationError(f"Expected type {self.type_.__name__}, got {type(value).__name__}")

        if self.choices is not None and value not in self.choices:
            raise ValidationError(f"Value {value!r} not in allowed choices {self.choices}")

        if self.type_ in (str, list):
            kind = "String" if self.type_ is str else "List"
            if self.min is not None and len(value) < self.min:
                raise ValidationError(f"{kind} length {len(value)} is less than minimum {self.min}")
            if self.max is not None and len(value) > self.max:
                raise ValidationError(f"{kind} length {len(value)} is greater than maximum {self.max}")


def validate_config(config: dict[str, Any], schema: dict[str, ConfigField]) -> dict[str, Any]:
    """
    Validate a configuration dictionary against a schema.

    Missing fields take their default value.

    Args:
        config: The configuration dictionary to validate
        schema: The schema dictionary (field_name -> ConfigField)

    Returns:
        A complete configuration dictionary

    Raises:
        ValidationError: If a field is unknown or fails validation
    """
    for key in config:
        if key not in schema:
            raise ValidationError(f"Unknown configuration field: {key}")

    result = generate_default_config(schema)
    for field_name, value in config.items():
        try:
            schema[field_name].validate(value)
        except ValidationError as e:
            raise ValidationError(f"Field '{field_name}': {e}") from e
        result[field_name] = value

    return result


def generate_default_config(schema: dict[str, ConfigField]) -> dict[str, Any]:
    """Generate a configuration dictionary with default values for all fields."""
    return {field_name: copy.deepcopy(field.default) for field_name, field in schema.items()}
