# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Multi-session MCP server built on the reference SDK.

:class:`MultiServerMCP` is a lowlevel ``Server`` whose list and invocation
handlers are scoped to the calling session. Sessions are opened by the HTTP
transport; the session's permission path (taken from the URL it connected on)
decides which tools, resources and prompts it can see and call.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from mcp.server.lowlevel.server import Server, request_ctx
from mcp.server.lowlevel.server import lifespan as default_lifespan
from mcp.shared.exceptions import McpError

from .services import PromptsService, ResourcesService, ToolsService
from .session import Session, SessionRegistry, current_session_id
from .transports import SseHttpTransport
from .. import types
from ..capability import CapabilityOptions, RegistrationError, reset_active_server, set_active_server
from ..config import ServerConfig
from ..permissions import PermissionEngine
from ..prompt import PromptSpec
from ..resource import ResourceSpec
from ..tool import ToolSpec
from ..utils import get_logger


class MultiServerMCP(Server[Any, Any]):
    """MCP server that filters capabilities per connection."""

    def __init__(
        self,
        name: str | None = None,
        *,
        version: str | None = None,
        instructions: str | None = None,
        config: ServerConfig | None = None,
        sessions: SessionRegistry | None = None,
        enforce_permissions: bool | None = None,
        lifespan: Callable[[Server[Any, Any]], Any] = default_lifespan,
    ) -> None:
        self.config = config or ServerConfig()
        super().__init__(
            name or self.config.server_name,
            version=version or self.config.server_version,
            instructions=instructions,
            lifespan=lifespan,
        )
        self.logger = get_logger(f"multimcp.server.{self.name}")

        self.sessions: SessionRegistry = sessions if sessions is not None else SessionRegistry()
        enforce = self.config.enforce_permissions if enforce_permissions is None else enforce_permissions
        self.permissions = PermissionEngine(enforce=enforce)
        if not enforce:
            self.logger.warning("permission enforcement disabled; every session sees every capability")

        self.tools = ToolsService(permissions=self.permissions, logger=self.logger)
        self.resources = ResourcesService(permissions=self.permissions, logger=self.logger)
        self.prompts = PromptsService(permissions=self.permissions, logger=self.logger)

        # //////////////////////////////////////////////////////////////////
        # Protocol handlers. Installed directly so McpError raised by the
        # services reaches the client as a JSON-RPC error.
        # //////////////////////////////////////////////////////////////////

        self.request_handlers[types.ListToolsRequest] = self._handle_list_tools
        self.request_handlers[types.CallToolRequest] = self._handle_call_tool
        self.request_handlers[types.ListResourcesRequest] = self._handle_list_resources
        self.request_handlers[types.ListResourceTemplatesRequest] = self._handle_list_resource_templates
        self.request_handlers[types.ReadResourceRequest] = self._handle_read_resource
        self.request_handlers[types.ListPromptsRequest] = self._handle_list_prompts
        self.request_handlers[types.GetPromptRequest] = self._handle_get_prompt

    # //////////////////////////////////////////////////////////////////
    # Registration
    # //////////////////////////////////////////////////////////////////

    @contextmanager
    def binding(self) -> Iterator[MultiServerMCP]:
        """Register functions decorated with ``@tool``/``@resource``/``@prompt`` on this server."""
        token = set_active_server(self)
        try:
            yield self
        finally:
            reset_active_server(token)

    def register_tool(
        self,
        target: str | ToolSpec | Callable[..., Any],
        fn: Callable[..., Any] | None = None,
        options: CapabilityOptions | None = None,
    ) -> ToolSpec:
        """Register a tool as ``register_tool(name, fn, options)`` or from a spec/decorated function."""
        if isinstance(target, str):
            if fn is None:
                raise TypeError("register_tool(name, fn) requires a callable")
            return self.tools.register(ToolSpec.from_options(target, fn, options))
        return self.tools.register(target)

    def register_resource(
        self,
        target: str | ResourceSpec | Callable[..., Any],
        uri_or_template: str | None = None,
        fn: Callable[..., Any] | None = None,
        options: CapabilityOptions | None = None,
    ) -> ResourceSpec | None:
        """Register a resource; malformed registrations are logged and dropped.

        ``uri_or_template`` is a template when it contains ``{placeholder}``
        segments, otherwise a concrete URI.
        """
        if not isinstance(target, str):
            return self.resources.register(target)
        if fn is None:
            raise TypeError("register_resource(name, uri_or_template, fn) requires a callable")
        try:
            spec = ResourceSpec.from_options(target, uri_or_template or "", fn, options)
        except RegistrationError as exc:
            self.logger.error("resource %r not registered: %s", target, exc)
            return None
        return self.resources.register(spec)

    def register_prompt(
        self,
        target: str | PromptSpec | Callable[..., Any],
        fn: Callable[..., Any] | None = None,
        options: CapabilityOptions | None = None,
    ) -> PromptSpec:
        if isinstance(target, str):
            if fn is None:
                raise TypeError("register_prompt(name, fn) requires a callable")
            return self.prompts.register(PromptSpec.from_options(target, fn, options))
        return self.prompts.register(target)

    # //////////////////////////////////////////////////////////////////
    # Introspection
    # //////////////////////////////////////////////////////////////////

    @property
    def tool_names(self) -> list[str]:
        return self.tools.tool_names

    @property
    def resource_names(self) -> list[str]:
        return self.resources.names

    @property
    def prompt_names(self) -> list[str]:
        return self.prompts.names

    def active_sessions(self) -> tuple[Session, ...]:
        """Return a snapshot of currently connected sessions."""
        return self.sessions.snapshot()

    # //////////////////////////////////////////////////////////////////
    # Programmatic invocation
    # //////////////////////////////////////////////////////////////////

    async def invoke_tool(
        self,
        name: str,
        arguments: Mapping[str, Any] | None = None,
        *,
        session: Session | str | None = None,
    ) -> types.CallToolResult:
        """Call a tool as *session* would; ``session=None`` means unscoped."""
        return await self.tools.call_tool(name, arguments, self._lookup_session(session))

    async def invoke_resource(
        self,
        uri: str,
        *,
        name: str | None = None,
        session: Session | str | None = None,
    ) -> types.ReadResourceResult:
        return await self.resources.read(uri, self._lookup_session(session), name=name)

    async def invoke_prompt(
        self,
        name: str,
        arguments: Mapping[str, Any] | None = None,
        *,
        session: Session | str | None = None,
    ) -> types.GetPromptResult:
        return await self.prompts.get_prompt(name, arguments, self._lookup_session(session))

    # //////////////////////////////////////////////////////////////////
    # Serving
    # //////////////////////////////////////////////////////////////////

    async def serve(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        log_level: str | None = None,
        **uvicorn_options: Any,
    ) -> None:
        """Serve over HTTP + SSE until interrupted."""
        transport = SseHttpTransport(self)
        await transport.run(host=host, port=port, log_level=log_level, **uvicorn_options)

    # //////////////////////////////////////////////////////////////////
    # Request handlers
    # //////////////////////////////////////////////////////////////////

    async def _handle_list_tools(self, _request: types.ListToolsRequest) -> types.ServerResult:
        session = self._session_for_listing("tools/list")
        if session is None:
            return types.ServerResult(types.ListToolsResult(tools=[]))
        return types.ServerResult(await self.tools.list_tools(session))

    async def _handle_call_tool(self, request: types.CallToolRequest) -> types.ServerResult:
        session = self._require_session("tools/call")
        result = await self.tools.call_tool(request.params.name, request.params.arguments, session)
        return types.ServerResult(result)

    async def _handle_list_resources(self, _request: types.ListResourcesRequest) -> types.ServerResult:
        session = self._session_for_listing("resources/list")
        if session is None:
            return types.ServerResult(types.ListResourcesResult(resources=[]))
        return types.ServerResult(await self.resources.list_resources(session))

    async def _handle_list_resource_templates(
        self, _request: types.ListResourceTemplatesRequest
    ) -> types.ServerResult:
        session = self._session_for_listing("resources/templates/list")
        if session is None:
            return types.ServerResult(types.ListResourceTemplatesResult(resourceTemplates=[]))
        return types.ServerResult(await self.resources.list_templates(session))

    async def _handle_read_resource(self, request: types.ReadResourceRequest) -> types.ServerResult:
        session = self._require_session("resources/read")
        return types.ServerResult(await self.resources.read(str(request.params.uri), session))

    async def _handle_list_prompts(self, _request: types.ListPromptsRequest) -> types.ServerResult:
        session = self._session_for_listing("prompts/list")
        if session is None:
            return types.ServerResult(types.ListPromptsResult(prompts=[]))
        return types.ServerResult(await self.prompts.list_prompts(session))

    async def _handle_get_prompt(self, request: types.GetPromptRequest) -> types.ServerResult:
        session = self._require_session("prompts/get")
        result = await self.prompts.get_prompt(request.params.name, request.params.arguments, session)
        return types.ServerResult(result)

    # //////////////////////////////////////////////////////////////////
    # Session resolution
    # //////////////////////////////////////////////////////////////////

    def _current_session(self) -> Session | None:
        try:
            context = request_ctx.get()
        except LookupError:
            return None
        session = self.sessions.current()
        if session is not None and session.runtime is None:
            session.attach_runtime(context.session)
        return session

    def _session_for_listing(self, method: str) -> Session | None:
        session = self._current_session()
        if session is None:
            self.logger.warning(
                "%s without an active session (sessionId=%r); returning nothing", method, current_session_id()
            )
        return session

    def _require_session(self, method: str) -> Session:
        session = self._current_session()
        if session is None:
            session_id = current_session_id()
            self.logger.error("%s without an active session (sessionId=%r)", method, session_id)
            raise McpError(
                types.ErrorData(code=types.INTERNAL_ERROR, message=f"No active session for {method} ({session_id})")
            )
        return session

    def _lookup_session(self, session: Session | str | None) -> Session | None:
        if session is None or isinstance(session, Session):
            return session
        found = self.sessions.get(session)
        if found is None:
            raise McpError(types.ErrorData(code=types.INTERNAL_ERROR, message=f"Unknown session {session}"))
        return found


__all__ = ["MultiServerMCP"]
