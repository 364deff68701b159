# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Transport adapters for :mod:`multimcp.server`."""

from __future__ import annotations

from .base import BaseTransport, SessionTransport
from .http import SseHttpTransport, build_app
from .sse import SseSessionTransport


__all__ = ["BaseTransport", "SessionTransport", "SseHttpTransport", "SseSessionTransport", "build_app"]
