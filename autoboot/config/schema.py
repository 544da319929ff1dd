"""
Settings Schema.

This module declares the fields of the ``[autoboot]`` settings table and
validates values read from the settings file.

Key features:
- Typed field definitions with defaults and descriptions
- Element type checking for list fields
- Defaults merged under partially specified tables
"""

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
    Represents a settings field with type and constraints.

    Attributes:
        type_: The expected type of the field value
        default: Default value for the field
        description: Human-readable description (written as a TOML comment)
        item_type: Element type for list fields
        non_empty: Reject empty strings
    """

    type_: type
    default: Any
    description: str = ""
    item_type: type | None = None
    non_empty: bool = False

    def __post_init__(self):
        """Validate field definition."""
        if not isinstance(self.default, self.type_):
            raise SchemaError(
                f"Default value {self.default!r} does not match type {self.type_.__name__}"
            )
        if self.item_type is not None and self.type_ is not list:
            raise SchemaError("item_type is only supported for list fields")

    def validate(self, value: Any) -> None:
        """
        Validate a value against this field's constraints.

        Args:
            value: The value to validate

        Raises:
            ValidationError: If validation fails
        """
        if not isinstance(value, self.type_):
            raise ValidationError(
                f"Expected type {self.type_.__name__}, got {type(value).__name__}"
            )

        if self.non_empty and self.type_ is str and not value.strip():
            raise ValidationError("Value must not be empty")

        if self.item_type is not None:
            for item in value:
                if not isinstance(item, self.item_type):
                    raise ValidationError(
                        f"List item {item!r} is not of type {self.item_type.__name__}"
                    )


def validate_config(config: dict[str, Any], schema: dict[str, ConfigField]) -> dict[str, Any]:
    """
    Validate a settings table and fill in the defaults.

    Args:
        config: The table read from the settings file (may be partial)
        schema: The schema dictionary (field_name -> ConfigField)

    Returns:
        A complete settings dictionary

    Raises:
        ValidationError: If an unknown field is present or a value is invalid
    """
    for key in config:
        if key not in schema:
            raise ValidationError(f"Unknown configuration field: {key}")

    merged = generate_default_config(schema)
    for field_name, value in config.items():
        try:
            schema[field_name].validate(value)
        except ValidationError as e:
            raise ValidationError(f"Field '{field_name}': {e}") from e
        merged[field_name] = value
    return merged


def generate_default_config(schema: dict[str, ConfigField]) -> dict[str, Any]:
    """Return a dictionary with the default value of every field."""
    return {
        field_name: list(field.default) if isinstance(field.default, list) else field.default
        for field_name, field in schema.items()
    }
