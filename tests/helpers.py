# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Shared test helpers for multimcp server tests."""

from __future__ import annotations

from itertools import count
from types import SimpleNamespace
from uuid import uuid4

import anyio
from mcp.server.lowlevel.server import request_ctx
from mcp.shared.context import RequestContext
from mcp.shared.message import SessionMessage
from starlette.responses import Response

from multimcp import types
from multimcp.server import Session, SessionRegistry


_REQUEST_COUNTER = count(1)


class DummySession:
    """Stand-in for the SDK's ``ServerSession`` captured in the request context."""

    def __init__(self, name: str = "session") -> None:
        self.name = name
        self.notifications: list[types.ServerNotification] = []

    async def send_notification(
        self, notification: types.ServerNotification, related_request_id: types.RequestId | None = None
    ) -> None:
        await anyio.lowlevel.checkpoint()
        self.notifications.append(notification)


class FakeTransport:
    """In-memory ``SessionTransport`` whose stream ends when ``disconnect`` is set."""

    def __init__(self, session_id: str | None = None, *, fail_sends: bool = False) -> None:
        self.session_id = session_id or uuid4().hex
        self.fail_sends = fail_sends
        self.sent: list[types.JSONRPCMessage] = []
        self.posted: list[bytes] = []
        self._disconnect: anyio.Event | None = None
        self.close_calls = 0
        self._closed = False
        self._read_writer, self.read_stream = anyio.create_memory_object_stream[SessionMessage | Exception](0)
        self.write_stream, self._write_reader = anyio.create_memory_object_stream[SessionMessage](0)

    @property
    def disconnect(self) -> anyio.Event:
        """Set to end :meth:`stream`; created lazily so sync tests can build transports."""
        if self._disconnect is None:
            self._disconnect = anyio.Event()
        return self._disconnect

    @property
    def closed(self) -> bool:
        return self._closed

    async def stream(self, scope, receive, send) -> None:
        await self.disconnect.wait()

    async def handle_post_message(self, scope, receive, send) -> None:
        body = b""
        more = True
        while more:
            message = await receive()
            body += message.get("body", b"")
            more = message.get("more_body", False)
        self.posted.append(body)
        await Response("Accepted", status_code=202)(scope, receive, send)

    async def send(self, message: types.JSONRPCMessage) -> None:
        if self.fail_sends:
            raise anyio.BrokenResourceError()
        self.sent.append(message)

    async def aclose(self) -> None:
        self.close_calls += 1
        if self._closed:
            return
        self._closed = True
        for stream in (self._read_writer, self.read_stream, self.write_stream, self._write_reader):
            await stream.aclose()


def open_session(
    registry: SessionRegistry,
    address: str = "",
    *,
    session_id: str | None = None,
    query: dict[str, str] | None = None,
) -> Session:
    """Register a session backed by a :class:`FakeTransport`."""
    session = Session(FakeTransport(session_id), address, request_query=query)
    registry.register(session)
    return session


async def run_with_context(
    session: DummySession,
    func,
    *args,
    session_id: str | None = None,
    meta=None,
    lifespan_context: dict[str, object] | None = None,
):
    """Execute *func* with ``request_ctx`` bound to *session* and a POST carrying ``sessionId``."""
    request = SimpleNamespace(query_params={"sessionId": session_id}) if session_id is not None else None
    ctx = RequestContext(
        request_id=next(_REQUEST_COUNTER),
        meta=meta,
        session=session,  # type: ignore[arg-type]
        lifespan_context=lifespan_context or {},
        request=request,
    )
    token = request_ctx.set(ctx)
    try:
        return await func(*args)
    finally:
        request_ctx.reset(token)
