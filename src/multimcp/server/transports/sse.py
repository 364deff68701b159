# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Server-Sent Events stream for a single session.

The client opens the stream with ``GET``; the first event (``endpoint``) tells
it where to ``POST`` its frames, including the ``sessionId`` query parameter.
Every server-to-client JSON-RPC message is then written as a ``message`` event.

Inbound frames are forwarded to the protocol runtime wrapped in
``ServerMessageMetadata`` whose ``request_context`` is the Starlette
``Request``, so handlers can recover the session from its query string.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote
from uuid import uuid4

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from mcp.shared.message import ServerMessageMetadata, SessionMessage
from pydantic import ValidationError
from sse_starlette import EventSourceResponse
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from ..session import SESSION_ID_PARAM
from ... import types
from ...utils import get_logger


_logger = get_logger("multimcp.transport.sse")


class SseSessionTransport:
    """Stream handle owned by exactly one session."""

    def __init__(self, messages_endpoint: str, *, session_id: str | None = None) -> None:
        self.session_id = session_id or uuid4().hex
        self._endpoint = messages_endpoint
        self._closed = False

        self._read_stream_writer: MemoryObjectSendStream[SessionMessage | Exception]
        self.read_stream: MemoryObjectReceiveStream[SessionMessage | Exception]
        self._read_stream_writer, self.read_stream = anyio.create_memory_object_stream(0)

        self.write_stream: MemoryObjectSendStream[SessionMessage]
        self._write_stream_reader: MemoryObjectReceiveStream[SessionMessage]
        self.write_stream, self._write_stream_reader = anyio.create_memory_object_stream(0)

        self._sse_stream_writer: MemoryObjectSendStream[dict[str, Any]]
        self._sse_stream_reader: MemoryObjectReceiveStream[dict[str, Any]]
        self._sse_stream_writer, self._sse_stream_reader = anyio.create_memory_object_stream(0)

    def __repr__(self) -> str:
        return f"SseSessionTransport(session_id={self.session_id!r})"

    @property
    def endpoint_url(self) -> str:
        """Relative URL the client must POST its frames to."""
        return f"{quote(self._endpoint)}?{SESSION_ID_PARAM}={self.session_id}"

    @property
    def closed(self) -> bool:
        return self._closed

    async def stream(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Write the event stream to the client; returns when the client goes away."""

        async def sse_writer() -> None:
            async with self._sse_stream_writer, self._write_stream_reader:
                await self._sse_stream_writer.send({"event": "endpoint", "data": self.endpoint_url})
                _logger.debug("sent endpoint event for session %s", self.session_id)

                async for session_message in self._write_stream_reader:
                    await self._sse_stream_writer.send(
                        {
                            "event": "message",
                            "data": session_message.message.model_dump_json(by_alias=True, exclude_none=True),
                        }
                    )

        response = EventSourceResponse(content=self._sse_stream_reader, data_sender_callable=sse_writer)
        await response(scope, receive, send)
        _logger.debug("event stream finished for session %s", self.session_id)

    async def handle_post_message(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        body = await request.body()

        try:
            message = types.JSONRPCMessage.model_validate_json(body)
        except ValidationError as err:
            _logger.warning("could not parse message for session %s: %s", self.session_id, err)
            response = Response("Could not parse message", status_code=400)
            await response(scope, receive, send)
            await self._forward(err)
            return

        response = Response("Accepted", status_code=202)
        await response(scope, receive, send)
        await self._forward(SessionMessage(message, metadata=ServerMessageMetadata(request_context=request)))

    async def send(self, message: types.JSONRPCMessage) -> None:
        """Queue *message* for delivery on the event stream."""
        await self.write_stream.send(SessionMessage(message))

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        for stream in (
            self._read_stream_writer,
            self.read_stream,
            self.write_stream,
            self._write_stream_reader,
            self._sse_stream_writer,
            self._sse_stream_reader,
        ):
            await stream.aclose()
        _logger.debug("transport closed for session %s", self.session_id)

    async def _forward(self, item: SessionMessage | Exception) -> None:
        try:
            await self._read_stream_writer.send(item)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            _logger.warning("session %s is closing; dropped inbound frame", self.session_id)


__all__ = ["SESSION_ID_PARAM", "SseSessionTransport"]
