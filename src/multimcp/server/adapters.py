# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Normalization helpers for capability callback results.

Callbacks may return plain Python values; the services run them through these
adapters so every response matches the MCP result types.
"""

from __future__ import annotations

import base64
from collections.abc import Iterable, Mapping
import json
from typing import Any

from pydantic import ValidationError

from .. import types


__all__ = ["error_tool_result", "normalize_prompt_result", "normalize_resource_payload", "normalize_tool_result"]

_TOOL_RESULT_KEYS = ("content", "structuredContent", "isError", "_meta", "meta")
_ROLES = ("user", "assistant")


def normalize_tool_result(value: Any) -> types.CallToolResult:
    """Coerce arbitrary tool callback output into ``CallToolResult``."""

    if isinstance(value, types.CallToolResult):
        return value

    if isinstance(value, Mapping) and any(key in value for key in _TOOL_RESULT_KEYS):
        try:
            return types.CallToolResult.model_validate(dict(value))
        except ValidationError:
            # Not a result envelope after all; treat it as structured data.
            pass

    structured: Any | None = None
    payload = value

    if isinstance(value, tuple) and len(value) == 2 and not isinstance(value[0], (str, bytes)):
        payload, structured = value
    elif isinstance(value, Mapping):
        structured = dict(value)

    result_payload: dict[str, Any] = {"content": _coerce_content_blocks(payload)}
    if structured is not None:
        result_payload["structuredContent"] = structured
    return types.CallToolResult(**result_payload)


def error_tool_result(message: str) -> types.CallToolResult:
    """In-band failure result reported back to the caller."""
    return types.CallToolResult(content=[types.TextContent(type="text", text=message)], isError=True)


def _coerce_content_blocks(source: Any) -> list[types.ContentBlock]:
    if source is None:
        return []

    if isinstance(source, (types.TextContent, types.ImageContent, types.AudioContent, types.EmbeddedResource)):
        return [source]
    if isinstance(source, types.ResourceLink):
        return [source]

    if isinstance(source, Mapping):
        block = _content_from_mapping(source)
        return [block] if block is not None else [_as_text_content(source)]

    if isinstance(source, (bytes, bytearray)):
        encoded = base64.b64encode(bytes(source)).decode("ascii")
        return [types.TextContent(type="text", text=encoded)]

    if isinstance(source, str):
        return [types.TextContent(type="text", text=source)]

    if isinstance(source, Iterable):
        blocks: list[types.ContentBlock] = []
        for item in source:
            blocks.extend(_coerce_content_blocks(item))
        return blocks

    return [_as_text_content(source)]


def _content_from_mapping(data: Mapping[str, Any]) -> types.ContentBlock | None:
    marker = data.get("type")
    if marker == "text":
        model: type[Any] = types.TextContent
    elif marker == "image":
        model = types.ImageContent
    elif marker == "audio":
        model = types.AudioContent
    elif marker == "resource":
        model = types.EmbeddedResource
    elif marker == "resource_link":
        model = types.ResourceLink
    else:
        return None
    try:
        return model.model_validate(dict(data))
    except ValidationError:
        return None


def _as_text_content(value: Any) -> types.TextContent:
    if isinstance(value, str):
        return types.TextContent(type="text", text=value)
    if isinstance(value, (bool, int, float)):
        return types.TextContent(type="text", text=str(value))
    try:
        text = json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        text = str(value)
    return types.TextContent(type="text", text=text)


def normalize_resource_payload(uri: str, declared_mime: str | None, payload: Any) -> types.ReadResourceResult:
    """Coerce resource callback output into ``ReadResourceResult``."""

    if isinstance(payload, types.ReadResourceResult):
        return payload

    if isinstance(payload, (types.TextResourceContents, types.BlobResourceContents)):
        return types.ReadResourceResult(contents=[payload])

    if isinstance(payload, list) and payload and all(
        isinstance(item, (types.TextResourceContents, types.BlobResourceContents)) for item in payload
    ):
        return types.ReadResourceResult(contents=payload)

    if isinstance(payload, Mapping):
        if "contents" in payload:
            return types.ReadResourceResult.model_validate(dict(payload))
        if "text" in payload:
            content: types.TextResourceContents | types.BlobResourceContents = (
                types.TextResourceContents.model_validate({"uri": uri, "mimeType": declared_mime, **payload})
            )
            return types.ReadResourceResult(contents=[content])
        if "blob" in payload:
            content = types.BlobResourceContents.model_validate({"uri": uri, "mimeType": declared_mime, **payload})
            return types.ReadResourceResult(contents=[content])

    if isinstance(payload, (bytes, bytearray)):
        mime = declared_mime or "application/octet-stream"
        encoded = base64.b64encode(bytes(payload)).decode("ascii")
        blob = types.BlobResourceContents(uri=uri, mimeType=mime, blob=encoded)
        return types.ReadResourceResult(contents=[blob])

    mime = declared_mime or "text/plain"
    text = payload if isinstance(payload, str) else _as_text_content(payload).text
    return types.ReadResourceResult(contents=[types.TextResourceContents(uri=uri, mimeType=mime, text=text)])


def normalize_prompt_result(value: Any, *, description: str | None = None) -> types.GetPromptResult:
    """Coerce prompt callback output into ``GetPromptResult``.

    Accepted shapes: a ``GetPromptResult``; a mapping with ``messages``; or a
    single item / sequence of items where each item is a ``PromptMessage``, a
    ``(role, text)`` pair, a message mapping, or a plain string (sent as the
    user).
    """

    if isinstance(value, types.GetPromptResult):
        return value

    if isinstance(value, Mapping) and "messages" in value:
        payload = dict(value)
        payload.setdefault("description", description)
        return types.GetPromptResult.model_validate(payload)

    if isinstance(value, tuple) and len(value) == 2 and value[0] in _ROLES:
        items: list[Any] = [value]
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        items = [value]

    messages = [_coerce_prompt_message(item) for item in items]
    return types.GetPromptResult(description=description, messages=messages)


def _coerce_prompt_message(item: Any) -> types.PromptMessage:
    if isinstance(item, types.PromptMessage):
        return item

    if isinstance(item, tuple) and len(item) == 2:
        role, content = item
        if role not in _ROLES:
            raise ValueError(f"Unsupported prompt message role {role!r}")
        return types.PromptMessage(role=role, content=_prompt_content(content))

    if isinstance(item, Mapping):
        role = item.get("role", "user")
        content = item.get("content", "")
        return types.PromptMessage(role=role, content=_prompt_content(content))

    if isinstance(item, str):
        return types.PromptMessage(role="user", content=types.TextContent(type="text", text=item))

    return types.PromptMessage(role="user", content=_as_text_content(item))


def _prompt_content(content: Any) -> types.ContentBlock:
    if isinstance(content, str):
        return types.TextContent(type="text", text=content)
    blocks = _coerce_content_blocks(content)
    if len(blocks) != 1:
        raise ValueError(f"Prompt message content must be a single block, got {len(blocks)}")
    return blocks[0]
