# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Pieces shared by the tool, resource and prompt registration modules."""

from __future__ import annotations

from collections.abc import Mapping
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .utils.schema import ArgumentSchema


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .server import MultiServerMCP


class RegistrationError(ValueError):
    """Raised when a capability registration is malformed."""


@dataclass(frozen=True, slots=True)
class CapabilityOptions:
    """Optional settings accepted by every ``register_*`` call.

    Attributes:
        description: Human readable description advertised in list results.
        argument_schema: Pydantic model validating the call arguments.
        metadata: Free-form metadata; resources copy it into ``_meta``.
        mime_type: Declared MIME type (resources only).
    """

    description: str | None = None
    argument_schema: ArgumentSchema | None = None
    metadata: Mapping[str, Any] | None = None
    mime_type: str | None = None


_ACTIVE_SERVER: ContextVar[MultiServerMCP | None] = ContextVar("_multimcp_active_server", default=None)


def get_active_server() -> MultiServerMCP | None:
    """Return the server currently collecting decorated capabilities, if any."""
    return _ACTIVE_SERVER.get()


def set_active_server(server: MultiServerMCP) -> Any:
    return _ACTIVE_SERVER.set(server)


def reset_active_server(token: Any) -> None:
    _ACTIVE_SERVER.reset(token)


__all__ = [
    "CapabilityOptions",
    "RegistrationError",
    "get_active_server",
    "reset_active_server",
    "set_active_server",
]
