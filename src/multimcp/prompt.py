# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Prompt registration utilities.

Prompt names follow the same hierarchy rules as tools: the group is every
segment but the last and the advertised name is flattened (``review/code`` is
listed as ``review_code``). When an ``argument_schema`` is declared, each model
field is advertised as one prompt argument and the callback receives the
validated values as keyword arguments.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .capability import CapabilityOptions, get_active_server
from .permissions import PermissionPath, flatten_name, group_from_name
from .utils.schema import ArgumentSchema, ensure_argument_schema


PromptFn = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class PromptSpec:
    """In-memory representation of a prompt registration."""

    name: str
    fn: PromptFn
    description: str | None = None
    argument_schema: ArgumentSchema | None = None
    group: PermissionPath = field(init=False)
    key: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "argument_schema", ensure_argument_schema(self.argument_schema))
        object.__setattr__(self, "group", group_from_name(self.name))
        object.__setattr__(self, "key", flatten_name(self.name))

    @classmethod
    def from_options(cls, name: str, fn: PromptFn, options: CapabilityOptions | None = None) -> PromptSpec:
        options = options or CapabilityOptions()
        description = options.description if options.description is not None else (fn.__doc__ or "").strip()
        return cls(name=name, fn=fn, description=description or None, argument_schema=options.argument_schema)


_PROMPT_ATTR = "__multimcp_prompt__"


def prompt(
    name: str | None = None,
    *,
    description: str | None = None,
    argument_schema: ArgumentSchema | None = None,
) -> Callable[[PromptFn], PromptFn]:
    """Decorator that marks a callable as a prompt template."""

    def decorator(fn: PromptFn) -> PromptFn:
        spec = PromptSpec.from_options(
            name or fn.__name__,
            fn,
            CapabilityOptions(description=description, argument_schema=argument_schema),
        )
        setattr(fn, _PROMPT_ATTR, spec)

        server = get_active_server()
        if server is not None:
            server.register_prompt(spec)
        return fn

    return decorator


def extract_prompt_spec(fn: PromptFn) -> PromptSpec | None:
    spec = getattr(fn, _PROMPT_ATTR, None)
    return spec if isinstance(spec, PromptSpec) else None


__all__ = ["PromptFn", "PromptSpec", "extract_prompt_spec", "prompt"]
