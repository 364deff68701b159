# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Tool registration utilities.

Tools are registered under hierarchical names such as ``calc/add``. Everything
before the last ``/`` is the tool's permission group; the protocol-facing name
is the flattened form ``calc_add``.

When a :class:`~multimcp.server.MultiServerMCP` is inside its
:meth:`binding <multimcp.server.MultiServerMCP.binding>` context, functions
decorated with :func:`tool` are registered immediately::

    class AddArgs(BaseModel):
        a: int
        b: int

    with server.binding():

        @tool("calc/add", argument_schema=AddArgs)
        def add(a: int, b: int) -> int:
            return a + b
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .capability import CapabilityOptions, get_active_server
from .permissions import PermissionPath, flatten_name, group_from_name
from .utils.schema import ArgumentSchema, ensure_argument_schema


ToolFn = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """In-memory representation of a tool registration."""

    name: str
    fn: ToolFn
    description: str | None = None
    argument_schema: ArgumentSchema | None = None
    group: PermissionPath = field(init=False)
    key: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "argument_schema", ensure_argument_schema(self.argument_schema))
        object.__setattr__(self, "group", group_from_name(self.name))
        object.__setattr__(self, "key", flatten_name(self.name))

    @classmethod
    def from_options(cls, name: str, fn: ToolFn, options: CapabilityOptions | None = None) -> ToolSpec:
        options = options or CapabilityOptions()
        return cls(
            name=name,
            fn=fn,
            description=_describe(options.description, fn),
            argument_schema=options.argument_schema,
        )


_TOOL_ATTR = "__multimcp_tool__"


def _describe(description: str | None, fn: Callable[..., Any]) -> str | None:
    text = description if description is not None else (fn.__doc__ or "")
    return text.strip() or None


def tool(
    name: str | None = None,
    *,
    description: str | None = None,
    argument_schema: ArgumentSchema | None = None,
) -> Callable[[ToolFn], ToolFn]:
    """Decorator that marks a callable as a tool.

    ``name`` defaults to the function name. The function's docstring is used
    when no description is given.
    """

    def decorator(fn: ToolFn) -> ToolFn:
        spec = ToolSpec.from_options(
            name or fn.__name__,
            fn,
            CapabilityOptions(description=description, argument_schema=argument_schema),
        )
        setattr(fn, _TOOL_ATTR, spec)

        server = get_active_server()
        if server is not None:
            server.register_tool(spec)
        return fn

    return decorator


def extract_tool_spec(fn: ToolFn) -> ToolSpec | None:
    """Return the :class:`ToolSpec` attached by :func:`tool`, if present."""
    spec = getattr(fn, _TOOL_ATTR, None)
    return spec if isinstance(spec, ToolSpec) else None


__all__ = ["ToolFn", "ToolSpec", "extract_tool_spec", "tool"]
