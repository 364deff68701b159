# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Tool capability service."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import logging
from typing import TYPE_CHECKING, Any

from mcp.shared.exceptions import McpError

from ..adapters import error_tool_result, normalize_tool_result
from ..registry import CapabilityRegistry
from ... import types
from ...context import ToolContext, find_context_param
from ...permissions import PermissionEngine
from ...tool import ToolSpec, extract_tool_spec
from ...utils import maybe_await_with_args
from ...utils.schema import SchemaError, input_schema_for, validate_arguments


if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..session import Session


class ToolsService:
    """Owns the tool registry; lists and invokes tools on behalf of a session."""

    def __init__(self, *, permissions: PermissionEngine, logger: logging.Logger) -> None:
        self._permissions = permissions
        self._logger = logger
        self.registry: CapabilityRegistry[ToolSpec] = CapabilityRegistry("tool")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def tool_names(self) -> list[str]:
        return self.registry.names

    def register(self, target: ToolSpec | Callable[..., Any]) -> ToolSpec:
        spec = target if isinstance(target, ToolSpec) else extract_tool_spec(target)
        if spec is None:
            fn = target
            spec = ToolSpec(name=getattr(fn, "__name__", "anonymous"), fn=fn)
        return self.registry.register(spec)

    def definitions(self, session: Session | None) -> list[types.Tool]:
        """Protocol descriptors for the tools *session* may see."""
        return [self._describe(spec) for spec in self._permissions.filter(self.registry.list(), session)]

    async def list_tools(self, session: Session | None) -> types.ListToolsResult:
        return types.ListToolsResult(tools=self.definitions(session))

    async def call_tool(
        self, name: str, arguments: Mapping[str, Any] | None, session: Session | None
    ) -> types.CallToolResult:
        spec = self.registry.get(name)
        if spec is None:
            raise McpError(types.ErrorData(code=types.INVALID_PARAMS, message=f"Tool {name} not found"))

        if not self._permissions.allows(spec, session):
            self._logger.warning(
                "session %s (permission path %r) denied tool %s",
                session.session_id if session else None,
                list(session.permission_path) if session else [],
                name,
            )
            raise McpError(types.ErrorData(code=types.INVALID_PARAMS, message=f"Access denied to tool {name}"))

        kwargs = self._bind_arguments(spec, name, arguments)
        context_param = find_context_param(spec.fn)
        if context_param is not None:
            kwargs[context_param] = ToolContext.for_session(session)

        try:
            result = await maybe_await_with_args(spec.fn, **kwargs)
        except McpError:
            raise
        except Exception as exc:
            self._logger.exception("tool %s failed", name)
            return error_tool_result(str(exc))

        if isinstance(result, types.ServerResult):
            raise RuntimeError("Tool returned types.ServerResult; return the nested CallToolResult instead.")

        return normalize_tool_result(result)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _bind_arguments(self, spec: ToolSpec, name: str, arguments: Mapping[str, Any] | None) -> dict[str, Any]:
        if spec.argument_schema is None:
            return dict(arguments or {})
        try:
            return validate_arguments(spec.argument_schema, arguments)
        except SchemaError as exc:
            raise McpError(
                types.ErrorData(code=types.INVALID_PARAMS, message=f"Invalid arguments for tool {name}: {exc}")
            ) from exc

    @staticmethod
    def _describe(spec: ToolSpec) -> types.Tool:
        return types.Tool(
            name=spec.key,
            description=spec.description,
            inputSchema=input_schema_for(spec.argument_schema),
        )


__all__ = ["ToolsService"]
