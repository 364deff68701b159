# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Argument schemas for registered capabilities.

Capabilities declare their arguments as Pydantic models. This module turns
those models into the JSON Schema advertised by ``tools/list``, the argument
list advertised by ``prompts/list``, and validates incoming arguments.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from .. import types


__all__ = [
    "ArgumentSchema",
    "EMPTY_INPUT_SCHEMA",
    "SchemaError",
    "ensure_argument_schema",
    "input_schema_for",
    "prompt_arguments_for",
    "validate_arguments",
]


ArgumentSchema = type[BaseModel]

EMPTY_INPUT_SCHEMA: dict[str, Any] = {"type": "object"}
"""Schema advertised for tools that accept no structured input."""


class SchemaError(ValueError):
    """Raised when a declared schema is not usable, or arguments fail validation."""


def ensure_argument_schema(schema: Any) -> ArgumentSchema | None:
    """Return *schema* when it is a Pydantic model class, ``None`` for ``None``."""
    if schema is None:
        return None
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        return schema
    raise SchemaError(f"argument_schema must be a pydantic BaseModel subclass, got {schema!r}")


def input_schema_for(schema: ArgumentSchema | None) -> dict[str, Any]:
    """JSON Schema for a tool's input, with cosmetic ``title`` keys removed."""
    if schema is None:
        return dict(EMPTY_INPUT_SCHEMA)

    json_schema = schema.model_json_schema()
    _prune_titles(json_schema)
    json_schema.setdefault("type", "object")
    return json_schema


def prompt_arguments_for(schema: ArgumentSchema | None) -> list[types.PromptArgument]:
    """One ``PromptArgument`` per model field; optional fields are not required."""
    if schema is None:
        return []

    arguments: list[types.PromptArgument] = []
    for name, field in schema.model_fields.items():
        arguments.append(
            types.PromptArgument(
                name=field.alias or name,
                description=field.description,
                required=field.is_required(),
            )
        )
    return arguments


def validate_arguments(schema: ArgumentSchema, arguments: Mapping[str, Any] | None) -> dict[str, Any]:
    """Validate *arguments* against *schema* and return the parsed field values.

    Raises:
        SchemaError: wrapping the validator's message on failure.
    """
    try:
        model = schema.model_validate(dict(arguments or {}))
    except ValidationError as exc:
        raise SchemaError(str(exc)) from exc
    return {name: getattr(model, name) for name in type(model).model_fields}


def _prune_titles(schema: Any) -> None:
    if isinstance(schema, dict):
        schema.pop("title", None)
        for key, value in schema.items():
            if key == "properties" and isinstance(value, dict):
                for prop in value.values():
                    _prune_titles(prop)
            else:
                _prune_titles(value)
    elif isinstance(schema, list):
        for item in schema:
            _prune_titles(item)
