# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Multi-session demo server.

Usage::

    uv run python examples/calc/server.py

Connect an MCP client to one of:

* ``http://127.0.0.1:3001/sse`` -- unscoped, sees everything;
* ``http://127.0.0.1:3001/sse/calc`` -- sees ``calc_add``, ``calc_divide`` and
  the ungrouped ``echo`` tool;
* ``http://127.0.0.1:3001/sse/ops`` -- sees ``ops_status`` and ``echo``.

Append ``?user=<name>`` to the stream URL; ``ops_status`` reads it through its
:class:`~multimcp.ToolContext`.
"""

from __future__ import annotations

import asyncio

from pydantic import BaseModel, Field

from multimcp import MultiServerMCP, ToolContext, prompt, resource, tool
from multimcp.utils import setup_logger


class BinaryArgs(BaseModel):
    a: float = Field(description="Left operand")
    b: float = Field(description="Right operand")


class ReviewArgs(BaseModel):
    expression: str = Field(description="Arithmetic expression to explain")


server = MultiServerMCP("calc-demo", instructions="Scoped calculator and ops tools.")

with server.binding():

    @tool("calc/add", argument_schema=BinaryArgs)
    def add(a: float, b: float) -> str:
        """Add two numbers."""
        return f"{a + b:g}"

    @tool("calc/divide", argument_schema=BinaryArgs)
    def divide(a: float, b: float) -> str:
        """Divide a by b."""
        if b == 0:
            raise ValueError("division by zero")
        return f"{a / b:g}"

    @tool("ops/status")
    async def status(ctx: ToolContext) -> dict[str, object]:
        """Report who is asking and how many sessions are open."""
        return {
            "user": ctx.request_query.get("user", "anonymous"),
            "group": str(ctx.permission_path) or "/",
            "sessions": len(server.active_sessions()),
        }

    @tool()
    def echo(text: str = "") -> str:
        """Echo text back."""
        return text

    @resource("calc/constants", uri="calc://constants", mime_type="application/json")
    def constants() -> dict[str, str]:
        return {"text": '{"pi": 3.14159, "e": 2.71828}'}

    @resource("greeting", template="greeting://{name}", description="Personal greeting")
    def greeting(uri: str, name: str) -> str:
        return f"Hello, {name}!"

    @prompt("calc/explain", argument_schema=ReviewArgs)
    def explain(expression: str) -> list[object]:
        """Explain an arithmetic expression step by step."""
        return [
            ("assistant", "You are a patient maths tutor."),
            f"Explain how to evaluate {expression}.",
        ]


async def main() -> None:
    setup_logger()
    await server.serve()


if __name__ == "__main__":
    asyncio.run(main())
