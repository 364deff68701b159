# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""multimcp: one MCP process, many sessions, group-scoped capabilities."""

from __future__ import annotations

from . import types
from .capability import CapabilityOptions, RegistrationError
from .config import ServerConfig
from .context import ToolContext
from .permissions import PermissionPath, derive, is_allowed
from .prompt import prompt
from .resource import resource
from .server import MultiServerMCP, SessionRegistry, build_app
from .templates import UriTemplate
from .tool import tool


__all__ = [
    "CapabilityOptions",
    "MultiServerMCP",
    "PermissionPath",
    "RegistrationError",
    "ServerConfig",
    "SessionRegistry",
    "ToolContext",
    "UriTemplate",
    "build_app",
    "derive",
    "is_allowed",
    "prompt",
    "resource",
    "tool",
    "types",
]
