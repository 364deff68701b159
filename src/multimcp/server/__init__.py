# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Public server-side surface for multimcp.

The heavy lifting lives in :mod:`multimcp.server.core`; this module re-exports
the primitives host applications are expected to import.
"""

from __future__ import annotations

from .connections import ConnectionManager, ConnectionState
from .core import MultiServerMCP
from .session import Session, SessionRegistry
from .transports import SseHttpTransport, build_app


__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "MultiServerMCP",
    "Session",
    "SessionRegistry",
    "SseHttpTransport",
    "build_app",
]
