# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Server configuration.

Every setting can be supplied through an environment variable carrying the
``MCP_`` prefix (or a ``.env`` file), e.g. ``MCP_SERVER_PORT=8080``. The log
level also honours the bare ``LOG_LEVEL`` variable.
"""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def normalize_endpoint(path: str) -> str:
    """Return *path* with exactly one leading slash and no trailing slash."""
    return "/" + path.strip("/")


class ServerConfig(BaseSettings):
    """Settings for a :class:`~multimcp.server.MultiServerMCP` deployment."""

    model_config = SettingsConfigDict(
        env_prefix="MCP_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    server_name: str = "MultiServerMCP"
    server_version: str = "1.0.0"

    # HTTP settings
    server_host: str = "127.0.0.1"
    server_port: int = 3001
    sse_endpoint: str = "/sse"
    messages_endpoint: str = "/message"

    heartbeat_interval: float = Field(default=60.0, gt=0)
    """Seconds between liveness probes on each open stream."""

    enforce_permissions: bool = True

    max_process_faults: int | None = Field(default=None, ge=1)
    """Unhandled background faults tolerated before shutdown; ``None`` only logs them."""

    log_level: Literal["debug", "info", "warning", "error", "critical"] = Field(
        default="info",
        validation_alias=AliasChoices("MCP_LOG_LEVEL", "LOG_LEVEL", "log_level"),
    )

    @field_validator("sse_endpoint", "messages_endpoint")
    @classmethod
    def _normalize_endpoint(cls, value: str) -> str:
        return normalize_endpoint(value)

    @field_validator("log_level", mode="before")
    @classmethod
    def _lower_log_level(cls, value: object) -> object:
        return value.lower() if isinstance(value, str) else value


__all__ = ["ServerConfig", "normalize_endpoint"]
