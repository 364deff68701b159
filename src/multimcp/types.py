# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Re-export of the MCP schema bindings.

The reference SDK ships generated Pydantic models under ``mcp.types``; this
module re-exports them so application code and the capability services share a
single import site.
"""

from __future__ import annotations

from mcp import types as _types


__all__ = tuple(name for name in dir(_types) if not name.startswith("_"))

globals().update({name: getattr(_types, name) for name in __all__})
