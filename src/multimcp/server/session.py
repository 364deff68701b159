# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Session bookkeeping.

A :class:`Session` is created for every open stream and registered in the
:class:`SessionRegistry` under the transport's session identifier. Incoming
POST frames and capability handlers use that identifier to find the session
and, through it, the connection's permission path.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
import threading
import time
from types import MappingProxyType
from typing import TYPE_CHECKING, Any
import weakref

from mcp.server.lowlevel.server import request_ctx

from ..permissions import EMPTY_PATH, PermissionPath, derive
from ..utils import get_logger


if TYPE_CHECKING:  # pragma: no cover - typing only
    from mcp.server.session import ServerSession

    from .transports.base import SessionTransport


SESSION_ID_PARAM = "sessionId"

_EMPTY_QUERY: Mapping[str, str] = MappingProxyType({})

_logger = get_logger("multimcp.sessions")


def current_session_id() -> str | None:
    """Session identifier of the request being handled, read from its ``sessionId`` query parameter."""
    try:
        context = request_ctx.get()
    except LookupError:
        return None
    query_params = getattr(context.request, "query_params", None)
    if query_params is None:
        return None
    return query_params.get(SESSION_ID_PARAM) or None


class Session:
    """State attached to one open connection."""

    def __init__(
        self,
        transport: SessionTransport,
        address: str = "",
        *,
        request_query: Mapping[str, str] | None = None,
    ) -> None:
        self._transport = transport
        self._address = address
        self._permission_path = derive(address)
        self._request_query: Mapping[str, str] = MappingProxyType(dict(request_query or {}))
        self._runtime_ref: weakref.ReferenceType[ServerSession] | None = None
        self._metadata: dict[str, Any] = {}
        self.created_at = time.time()
        _logger.debug(
            "created session %s for address %r (permission path %r)",
            transport.session_id,
            address,
            list(self._permission_path),
        )

    def __repr__(self) -> str:
        return f"Session(session_id={self.session_id!r}, address={self._address!r})"

    @property
    def session_id(self) -> str:
        return self._transport.session_id

    @property
    def address(self) -> str:
        return self._address

    @property
    def transport(self) -> SessionTransport:
        return self._transport

    @property
    def permission_path(self) -> PermissionPath:
        return self._permission_path

    @property
    def request_query(self) -> Mapping[str, str]:
        """Read-only snapshot of the query parameters of the opening request."""
        return self._request_query

    def clear_permission_path(self) -> None:
        """Drop every restriction from this session."""
        self._permission_path = EMPTY_PATH
        _logger.debug("cleared permission path for session %s", self.session_id)

    # ------------------------------------------------------------------
    # Protocol runtime back-reference
    # ------------------------------------------------------------------

    def attach_runtime(self, runtime: ServerSession) -> None:
        self._runtime_ref = weakref.ref(runtime)

    @property
    def runtime(self) -> ServerSession | None:
        """The live ``ServerSession`` for this connection, if it still exists."""
        if self._runtime_ref is None:
            return None
        return self._runtime_ref()

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def set_metadata(self, key: str, value: Any) -> None:
        self._metadata[key] = value

    def get_metadata(self, key: str, default: Any = None) -> Any:
        return self._metadata.get(key, default)


class SessionRegistry:
    """Thread-safe mapping of session identifier to :class:`Session`."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def register(self, session: Session) -> None:
        with self._lock:
            self._sessions[session.session_id] = session
        _logger.debug("session registered: %s", session.session_id)

    def get(self, session_id: str | None) -> Session | None:
        if not session_id:
            return None
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            _logger.debug("session not found: %s", session_id)
        return session

    def remove(self, session_id: str) -> Session | None:
        """Forget *session_id*; removing an unknown id is a no-op."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            _logger.debug("session removed: %s", session_id)
        return session

    def request_query(self, session_id: str) -> Mapping[str, str]:
        """Query parameters the session was opened with, or an empty mapping."""
        session = self.get(session_id)
        return session.request_query if session is not None else _EMPTY_QUERY

    def current(self) -> Session | None:
        """Session owning the request currently being handled, if any."""
        return self.get(current_session_id())

    def snapshot(self) -> tuple[Session, ...]:
        with self._lock:
            return tuple(self._sessions.values())

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __iter__(self) -> Iterator[Session]:
        return iter(self.snapshot())


__all__ = ["SESSION_ID_PARAM", "Session", "SessionRegistry", "current_session_id"]
