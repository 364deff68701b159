# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""HTTP acceptor for multi-session SSE.

Routes:

* ``GET /health`` -- liveness of the process;
* ``GET <sse_endpoint>`` and ``GET <sse_endpoint>/<key>`` -- open a stream;
  ``<key>`` (which may contain ``/``) becomes the session's permission path;
* ``POST <messages_endpoint>?sessionId=<id>`` -- deliver one client frame.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from uvicorn import Config, Server

from .base import BaseTransport
from ..connections import ConnectionManager
from ..faults import FaultMonitor
from ..middleware import TRACE_HEADER, TraceIdMiddleware


if TYPE_CHECKING:
    from starlette.types import Receive, Scope, Send

    from ..core import MultiServerMCP
    from ...config import ServerConfig


@dataclass(slots=True)
class StreamEndpoint:
    """ASGI adapter opening a connection for the ``key`` path parameter."""

    manager: ConnectionManager

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        address = scope.get("path_params", {}).get("key", "")
        await self.manager.serve(scope, receive, send, address)


@dataclass(slots=True)
class MessageEndpoint:
    """ASGI adapter routing a POSTed frame to its session."""

    manager: ConnectionManager

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.manager.route_message(scope, receive, send)


def build_app(
    server: MultiServerMCP,
    manager: ConnectionManager | None = None,
    config: ServerConfig | None = None,
) -> Starlette:
    """Assemble the Starlette application serving *server*."""
    config = config or server.config
    manager = manager or ConnectionManager(server, server.sessions, config)

    async def health(request: Request) -> JSONResponse:
        return JSONResponse(
            {"status": "ok", "serverName": config.server_name, "version": config.server_version}
        )

    @asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        try:
            yield
        finally:
            await manager.aclose()

    stream = StreamEndpoint(manager)
    routes = [
        Route("/health", health, methods=["GET"]),
        Route(config.sse_endpoint, stream, methods=["GET"]),
        Route(f"{config.sse_endpoint}/{{key:path}}", stream, methods=["GET"]),
        Route(config.messages_endpoint, MessageEndpoint(manager), methods=["POST"]),
    ]
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=[TRACE_HEADER],
        ),
        Middleware(TraceIdMiddleware),
    ]

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.connections = manager
    return app


class SseHttpTransport(BaseTransport):
    """Serve a :class:`MultiServerMCP` over HTTP + SSE with uvicorn."""

    def __init__(self, server: MultiServerMCP, *, config: ServerConfig | None = None) -> None:
        super().__init__(server)
        self._config = config or server.config

    @property
    def config(self) -> ServerConfig:
        return self._config

    async def run(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        log_level: str | None = None,
        **uvicorn_options: Any,
    ) -> None:
        host = host or self._config.server_host
        port = port or self._config.server_port
        log_level = log_level or self._config.log_level

        app = build_app(self.server, config=self._config)
        uvicorn_config = Config(app=app, host=host, port=port, log_level=log_level, **uvicorn_options)
        server_instance = Server(uvicorn_config)

        def _request_shutdown() -> None:
            server_instance.should_exit = True

        monitor = FaultMonitor(max_faults=self._config.max_process_faults, on_exhausted=_request_shutdown)
        monitor.install()

        logger = self.server.logger
        logger.info("MCP server listening on http://%s:%d", host, port)
        logger.info("stream endpoint: %s/:key", self._config.sse_endpoint)
        logger.info("message endpoint: %s?sessionId=...", self._config.messages_endpoint)
        tool_names = self.server.tool_names
        logger.info("registered tools (%d): %s", len(tool_names), ", ".join(tool_names) or "-")

        try:
            await server_instance.serve()
        finally:
            monitor.uninstall()


__all__ = ["MessageEndpoint", "SseHttpTransport", "StreamEndpoint", "build_app"]
