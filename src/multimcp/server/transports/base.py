# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Shared transport primitives for :mod:`multimcp.server`.

Two layers live here:

* :class:`BaseTransport` runs a whole server (e.g. an HTTP acceptor);
* :class:`SessionTransport` is the contract for the per-connection stream
  handle that one :class:`~multimcp.server.session.Session` owns.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable


if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
    from mcp.shared.message import SessionMessage
    from starlette.types import Receive, Scope, Send

    from ... import types
    from ..core import MultiServerMCP


class BaseTransport(ABC):
    """Common base for server transports.

    Subclasses receive the active :class:`MultiServerMCP` instance and
    implement :meth:`run`, whose keyword arguments are transport specific.
    """

    def __init__(self, server: MultiServerMCP) -> None:
        self._server = server

    @property
    def server(self) -> MultiServerMCP:
        return self._server

    @abstractmethod
    async def run(self, **kwargs) -> None:
        """Start the transport and block until it stops."""


@runtime_checkable
class SessionTransport(Protocol):
    """Per-connection stream handle.

    ``read_stream`` / ``write_stream`` are handed to the protocol runtime;
    :meth:`stream` writes the outbound half to the client until it disconnects;
    :meth:`handle_post_message` feeds one inbound frame.
    """

    session_id: str
    read_stream: MemoryObjectReceiveStream[SessionMessage | Exception]
    write_stream: MemoryObjectSendStream[SessionMessage]

    @property
    def closed(self) -> bool: ...

    async def stream(self, scope: Scope, receive: Receive, send: Send) -> None: ...

    async def handle_post_message(self, scope: Scope, receive: Receive, send: Send) -> None: ...

    async def send(self, message: types.JSONRPCMessage) -> None: ...

    async def aclose(self) -> None: ...


__all__ = ["BaseTransport", "SessionTransport"]
