# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Per-call context handed to tool callbacks.

A tool callback that declares a parameter annotated with :class:`ToolContext`
receives one alongside its validated arguments::

    @tool("jk/ftd/build", argument_schema=BuildArgs)
    async def build(project: str, ctx: ToolContext) -> str:
        return f"{project} built for {ctx.request_query.get('user', 'anonymous')}"

The context exposes the calling session's identifier, its permission path and
the read-only query parameters of the request that opened the connection.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
import inspect
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, get_origin, get_type_hints

from .permissions import EMPTY_PATH, PermissionPath


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .server.session import Session


@dataclass(frozen=True, slots=True)
class ToolContext:
    """Immutable view of the session a tool is being invoked for."""

    session_id: str | None
    permission_path: PermissionPath = EMPTY_PATH
    request_query: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    session: Session | None = None

    @classmethod
    def for_session(cls, session: Session | None) -> ToolContext:
        if session is None:
            return cls(session_id=None)
        return cls(
            session_id=session.session_id,
            permission_path=session.permission_path,
            request_query=session.request_query,
            session=session,
        )


def find_context_param(func: Callable[..., Any]) -> str | None:
    """Return the name of the parameter annotated with :class:`ToolContext`, if any."""
    try:
        sig = inspect.signature(func)
    except (ValueError, TypeError):
        return None

    try:
        hints = get_type_hints(func)
    except Exception:
        # Unresolvable forward references; fall back to the raw annotations.
        hints = {}

    for param_name, param in sig.parameters.items():
        annotation = hints.get(param_name, param.annotation)
        if annotation is inspect.Parameter.empty:
            continue
        if isinstance(annotation, str):
            if annotation.rsplit(".", 1)[-1] == ToolContext.__name__:
                return param_name
            continue

        origin = get_origin(annotation)
        param_type = origin if origin is not None else annotation
        if param_type is ToolContext:
            return param_name

    return None


__all__ = ["ToolContext", "find_context_param"]
