# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""ASGI middleware that tags each HTTP request with a trace id.

The id comes from the ``x-trace-id`` request header or is generated. It is
echoed in the response header and a :class:`TraceLoggerAdapter` bound to it is
published as ``request.state.log``.
"""

from __future__ import annotations

from uuid import uuid4

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..utils.logger import get_trace_logger


TRACE_HEADER = "x-trace-id"


class TraceIdMiddleware:
    def __init__(self, app: ASGIApp, *, header_name: str = TRACE_HEADER, logger_name: str = "multimcp.http") -> None:
        self.app = app
        self.header_name = header_name
        self.logger_name = logger_name

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        trace_id = Headers(scope=scope).get(self.header_name) or str(uuid4())
        log = get_trace_logger(trace_id, self.logger_name)

        state = scope.setdefault("state", {})
        state["trace_id"] = trace_id
        state["log"] = log

        log.info("%s %s", scope.get("method", "-"), scope.get("path", "-"))

        async def send_with_trace(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers[self.header_name] = trace_id
            await send(message)

        await self.app(scope, receive, send_with_trace)


__all__ = ["TRACE_HEADER", "TraceIdMiddleware"]
