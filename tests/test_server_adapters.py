# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

from __future__ import annotations

import base64

import pytest

from multimcp import types
from multimcp.server.adapters import (
    error_tool_result,
    normalize_prompt_result,
    normalize_resource_payload,
    normalize_tool_result,
)


def test_tool_result_passthrough() -> None:
    result = types.CallToolResult(content=[types.TextContent(type="text", text="hi")])
    assert normalize_tool_result(result) is result


def test_tool_result_from_envelope_mapping() -> None:
    result = normalize_tool_result({"content": [{"type": "text", "text": "ok"}], "isError": False})

    assert result.content[0].text == "ok"
    assert result.structuredContent is None


def test_tool_result_from_scalars_and_sequences() -> None:
    assert normalize_tool_result(None).content == []
    assert normalize_tool_result(7).content[0].text == "7"
    assert [block.text for block in normalize_tool_result(["a", "b"]).content] == ["a", "b"]
    encoded = normalize_tool_result(b"\x00\x01").content[0].text
    assert base64.b64decode(encoded) == b"\x00\x01"


def test_tool_result_with_structured_pair() -> None:
    result = normalize_tool_result((["3 results"], {"count": 3}))

    assert result.content[0].text == "3 results"
    assert result.structuredContent == {"count": 3}


def test_error_tool_result() -> None:
    result = error_tool_result("went wrong")

    assert result.isError is True
    assert result.content[0].text == "went wrong"


def test_resource_text_and_blob() -> None:
    text = normalize_resource_payload("note://a", None, "hello").contents[0]
    assert text.text == "hello"
    assert text.mimeType == "text/plain"

    blob = normalize_resource_payload("img://a", "image/png", b"\x89PNG").contents[0]
    assert blob.mimeType == "image/png"
    assert base64.b64decode(blob.blob) == b"\x89PNG"


def test_resource_mapping_payloads() -> None:
    text = normalize_resource_payload("note://a", "text/markdown", {"text": "# hi"}).contents[0]
    assert text.mimeType == "text/markdown"

    structured = normalize_resource_payload("data://a", "application/json", {"rows": [1, 2]}).contents[0]
    assert structured.text == '{"rows": [1, 2]}'


def test_prompt_from_string_and_pairs() -> None:
    result = normalize_prompt_result("Say hi", description="greeting")

    assert result.description == "greeting"
    assert result.messages[0].role == "user"
    assert result.messages[0].content.text == "Say hi"

    single = normalize_prompt_result(("assistant", "Hello"))
    assert [message.role for message in single.messages] == ["assistant"]


def test_prompt_from_mapping_keeps_description() -> None:
    result = normalize_prompt_result(
        {"messages": [{"role": "user", "content": {"type": "text", "text": "x"}}]}, description="fallback"
    )

    assert result.description == "fallback"


def test_prompt_rejects_unknown_role() -> None:
    with pytest.raises(ValueError):
        normalize_prompt_result([("system", "nope")])
