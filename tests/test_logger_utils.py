# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

from __future__ import annotations

import io
import json
import logging
from typing import Any

import pytest

from multimcp.utils.logger import (
    ColoredFormatter,
    MultiMCPHandler,
    StructuredJSONFormatter,
    TraceLoggerAdapter,
    get_logger,
    get_trace_logger,
    setup_logger,
)


def _capture(formatter: logging.Formatter, emit: Any, name: str = "multimcp.test.logger") -> list[str]:
    stream = io.StringIO()

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    logger = logging.getLogger(name)
    logger.handlers = []
    logger.setLevel(logging.DEBUG)
    logger.addHandler(handler)
    logger.propagate = False

    emit(logger)
    handler.flush()
    logger.handlers = []
    logger.propagate = True

    return stream.getvalue().strip().splitlines()


def test_setup_logger_installs_single_handler(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MULTIMCP_LOG_JSON", "0")
    setup_logger(level="debug", force=True)
    setup_logger(level="error")

    root = logging.getLogger()
    handlers = [handler for handler in root.handlers if isinstance(handler, MultiMCPHandler)]

    assert len(handlers) == 1
    assert root.level == logging.DEBUG
    setup_logger(force=True)


def test_setup_logger_reads_level_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MULTIMCP_LOG_LEVEL", raising=False)
    monkeypatch.setenv("LOG_LEVEL", "warning")
    setup_logger(force=True)
    assert logging.getLogger().level == logging.WARNING

    monkeypatch.setenv("MULTIMCP_LOG_LEVEL", "debug")
    setup_logger(force=True)
    assert logging.getLogger().level == logging.DEBUG

    monkeypatch.delenv("MULTIMCP_LOG_LEVEL")
    monkeypatch.delenv("LOG_LEVEL")
    setup_logger(force=True)
    assert logging.getLogger().level == logging.INFO


def test_setup_logger_json_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MULTIMCP_LOG_JSON", "1")
    setup_logger(force=True)

    handler = next(h for h in logging.getLogger().handlers if isinstance(h, MultiMCPHandler))
    assert isinstance(handler.formatter, StructuredJSONFormatter)

    monkeypatch.setenv("MULTIMCP_LOG_JSON", "0")
    setup_logger(force=True, use_color=False)
    handler = next(h for h in logging.getLogger().handlers if isinstance(h, MultiMCPHandler))
    assert not isinstance(handler.formatter, (StructuredJSONFormatter, ColoredFormatter))


def test_json_formatter_includes_trace_and_extras() -> None:
    def emit(logger: logging.Logger) -> None:
        TraceLoggerAdapter(logger, "t-1").info("greeting", extra={"session_id": "abc"})

    lines = _capture(StructuredJSONFormatter(lambda payload: json.dumps(payload)), emit)

    assert len(lines) == 1
    payload = json.loads(lines[0])
    assert payload["logger"] == "multimcp.test.logger"
    assert payload["level"] == "info"
    assert payload["message"] == "greeting"
    assert payload["trace_id"] == "t-1"
    assert payload["context"] == {"session_id": "abc"}


def test_json_formatter_omits_missing_trace() -> None:
    lines = _capture(StructuredJSONFormatter(), lambda logger: logger.warning("plain"))

    payload = json.loads(lines[0])
    assert "trace_id" not in payload
    assert "context" not in payload


def test_trace_adapter_keeps_explicit_trace() -> None:
    def emit(logger: logging.Logger) -> None:
        TraceLoggerAdapter(logger, "outer").info("call", extra={"trace_id": "inner"})

    lines = _capture(logging.Formatter("%(trace_id)s %(message)s"), emit)

    assert lines == ["inner call"]


def test_colored_formatter_restores_record() -> None:
    formatter = ColoredFormatter("%(levelname)s %(name)s %(trace_id)s %(message)s")
    record = logging.LogRecord("demo", logging.ERROR, __file__, 0, "bad", args=(), exc_info=None)
    record.trace_id = "t-9"

    rendered = formatter.format(record)

    assert "\033[" in rendered
    assert "t-9" in rendered
    assert record.levelname == "ERROR"
    assert record.name == "demo"
    assert record.trace_id == "t-9"


def test_default_format_works_without_trace(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MULTIMCP_LOG_JSON", "0")
    setup_logger(force=True, use_color=False)
    handler = next(h for h in logging.getLogger().handlers if isinstance(h, MultiMCPHandler))

    record = logging.LogRecord("demo", logging.INFO, __file__, 0, "hello", args=(), exc_info=None)
    assert handler.filter(record)
    assert handler.format(record).endswith("[demo] [-] hello")


def test_get_trace_logger_binds_name() -> None:
    adapter = get_trace_logger("t-2", "multimcp.http")

    assert adapter.trace_id == "t-2"
    assert adapter.logger is get_logger("multimcp.http")
