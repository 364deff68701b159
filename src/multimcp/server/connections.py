# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Connection lifecycle.

Each ``GET`` on the stream endpoint becomes one connection that moves through
``OPENING -> ACTIVE -> CLOSING -> CLOSED``. While active, three tasks share one
task group:

* the event stream to the client (ends when the client disconnects);
* the protocol runtime (``Server.run``) on the transport's streams;
* a liveness probe that sends a ``heartbeat`` notification every
  ``heartbeat_interval`` seconds.

Whichever task finishes first moves the connection to ``CLOSING`` and cancels
the others. The transport is then closed and the session removed.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
import enum
import threading
import time
from typing import TYPE_CHECKING

import anyio
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import Receive, Scope, Send

from .session import SESSION_ID_PARAM, Session, SessionRegistry
from .. import types
from ..config import ServerConfig
from ..utils import get_logger


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .core import MultiServerMCP
    from .transports.base import SessionTransport


HEARTBEAT_METHOD = "heartbeat"

TransportFactory = Callable[[], "SessionTransport"]


class ConnectionState(enum.Enum):
    OPENING = "opening"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass(slots=True)
class Connection:
    """Lifecycle state of one open stream."""

    session: Session
    state: ConnectionState = ConnectionState.OPENING
    close_reason: str | None = None
    cancel_scope: anyio.CancelScope | None = None
    opened_at: float = field(default_factory=time.time)

    @property
    def session_id(self) -> str:
        return self.session.session_id

    def begin_closing(self, reason: str) -> None:
        """Move to ``CLOSING`` and cancel the connection's tasks; repeated calls are no-ops."""
        if self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return
        self.state = ConnectionState.CLOSING
        self.close_reason = reason
        if self.cancel_scope is not None:
            self.cancel_scope.cancel()


def heartbeat_message(timestamp_ms: int | None = None) -> types.JSONRPCMessage:
    """JSON-RPC notification written down idle streams to keep them alive."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return types.JSONRPCMessage(
        types.JSONRPCNotification(jsonrpc="2.0", method=HEARTBEAT_METHOD, params={"timestamp": timestamp_ms})
    )


class ConnectionManager:
    """Opens, supervises and tears down stream connections."""

    def __init__(
        self,
        server: MultiServerMCP,
        sessions: SessionRegistry | None = None,
        config: ServerConfig | None = None,
        *,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self._server = server
        self._sessions = sessions if sessions is not None else server.sessions
        self._config = config or server.config
        self._transport_factory = transport_factory or self._default_transport
        self._connections: dict[str, Connection] = {}
        self._lock = threading.Lock()
        self._logger = get_logger("multimcp.connections")

    @property
    def sessions(self) -> SessionRegistry:
        return self._sessions

    def _default_transport(self) -> SessionTransport:
        # Imported here to avoid a cycle with the transports package.
        from .transports.sse import SseSessionTransport

        return SseSessionTransport(self._config.messages_endpoint)

    def connection(self, session_id: str) -> Connection | None:
        with self._lock:
            return self._connections.get(session_id)

    def connections(self) -> tuple[Connection, ...]:
        with self._lock:
            return tuple(self._connections.values())

    # ------------------------------------------------------------------
    # Stream endpoint
    # ------------------------------------------------------------------

    async def serve(self, scope: Scope, receive: Receive, send: Send, address: str = "") -> None:
        """Run one connection from open to close."""
        request = Request(scope, receive)
        transport = self._transport_factory()
        session = Session(transport, address, request_query=dict(request.query_params))
        connection = Connection(session)

        self._sessions.register(session)
        with self._lock:
            self._connections[session.session_id] = connection
        self._logger.info(
            "connection opened: %s (address %r, active connections %d)",
            session.session_id,
            address,
            self._sessions.count(),
        )

        try:
            async with anyio.create_task_group() as tg:
                connection.cancel_scope = tg.cancel_scope
                connection.state = ConnectionState.ACTIVE
                tg.start_soon(self._run_stream, connection, scope, receive, send)
                tg.start_soon(self._run_runtime, connection)
                tg.start_soon(self._run_probe, connection)
        finally:
            with anyio.CancelScope(shield=True):
                await self._finalize(connection)

    async def _run_stream(self, connection: Connection, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await connection.session.transport.stream(scope, receive, send)
        except Exception:
            self._logger.exception("event stream failed for %s", connection.session_id)
            connection.begin_closing("transport error")
            return
        connection.begin_closing("client disconnected")

    async def _run_runtime(self, connection: Connection) -> None:
        transport = connection.session.transport
        try:
            await self._server.run(
                transport.read_stream,
                transport.write_stream,
                self._server.create_initialization_options(),
            )
        except Exception:
            self._logger.exception("protocol runtime failed for %s", connection.session_id)
            connection.begin_closing("runtime error")
            return
        connection.begin_closing("runtime finished")

    async def _run_probe(self, connection: Connection) -> None:
        interval = self._config.heartbeat_interval
        transport = connection.session.transport
        while True:
            await anyio.sleep(interval)
            try:
                with anyio.fail_after(interval):
                    await transport.send(heartbeat_message())
            except Exception as exc:
                self._logger.error("heartbeat to %s failed: %r", connection.session_id, exc)
                connection.begin_closing("liveness probe failed")
                return
            self._logger.debug("heartbeat sent to %s", connection.session_id)

    async def _finalize(self, connection: Connection) -> None:
        connection.begin_closing("connection ended")
        try:
            await connection.session.transport.aclose()
        finally:
            self._sessions.remove(connection.session_id)
            with self._lock:
                self._connections.pop(connection.session_id, None)
            connection.state = ConnectionState.CLOSED
            self._logger.info(
                "connection closed: %s (%s, active connections %d)",
                connection.session_id,
                connection.close_reason,
                self._sessions.count(),
            )

    # ------------------------------------------------------------------
    # Message endpoint
    # ------------------------------------------------------------------

    async def route_message(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Deliver one POSTed frame to the transport of the session it names."""
        request = Request(scope, receive)
        session_id = request.query_params.get(SESSION_ID_PARAM)

        if not session_id:
            self._logger.error("message rejected: missing %s", SESSION_ID_PARAM)
            response = JSONResponse({"error": f"missing {SESSION_ID_PARAM}"}, status_code=400)
            await response(scope, receive, send)
            return

        session = self._sessions.get(session_id)
        if session is None or session.transport.closed:
            self._logger.error("message rejected: no active connection for session %s", session_id)
            response = JSONResponse({"error": "no active connection"}, status_code=400)
            await response(scope, receive, send)
            return

        self._logger.debug("routing message to session %s", session_id)
        await session.transport.handle_post_message(scope, receive, send)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Ask every open connection to close."""
        for connection in self.connections():
            connection.begin_closing("server shutting down")


__all__ = ["Connection", "ConnectionManager", "ConnectionState", "HEARTBEAT_METHOD", "heartbeat_message"]
