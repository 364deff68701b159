# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Logging utilities for multimcp.

Everything here sits on the standard library ``logging`` module. Records can be
rendered as colored text, plain text or JSON, and every record carries a
``trace_id`` attribute so log lines emitted while handling an HTTP request can
be correlated with the ``x-trace-id`` response header.
"""

from __future__ import annotations

from collections.abc import Callable, MutableMapping
import json
import logging
import os
from typing import Any, ClassVar, Final


RESET: Final[str] = "\033[0m"

DEBUG_COLOR: Final[str] = "\033[36m"
INFO_COLOR: Final[str] = "\033[32m"
WARNING_COLOR: Final[str] = "\033[33m"
ERROR_COLOR: Final[str] = "\033[1;31m"
CRITICAL_COLOR: Final[str] = "\033[1;35m"

LOGGER_COLOR: Final[str] = "\033[94m"
TRACE_COLOR: Final[str] = "\033[90m"

DEFAULT_LOGGER_NAME: Final[str] = "multimcp"
ENV_LOG_LEVEL: Final[str] = "MULTIMCP_LOG_LEVEL"
ENV_LOG_LEVEL_FALLBACK: Final[str] = "LOG_LEVEL"
ENV_LOG_JSON: Final[str] = "MULTIMCP_LOG_JSON"
ENV_NO_COLOR: Final[str] = "NO_COLOR"
DEFAULT_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] [%(trace_id)s] %(message)s"
DEFAULT_DATEFMT: Final[str] = "%Y-%m-%d %H:%M:%S"
NO_TRACE: Final[str] = "-"

JsonSerializer = Callable[[dict[str, Any]], str]

_BUILTIN_RECORD_KEYS: frozenset[str] = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "process",
        "processName",
        "taskName",
        "message",
        "asctime",
        "trace_id",
    }
)


class _TraceDefaultFilter(logging.Filter):
    """Guarantee ``record.trace_id`` exists so format strings never fail."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = NO_TRACE
        return True


class ColoredFormatter(logging.Formatter):
    """Formatter that adds ANSI colors to level, logger name and trace id."""

    LEVEL_COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": DEBUG_COLOR,
        "INFO": INFO_COLOR,
        "WARNING": WARNING_COLOR,
        "ERROR": ERROR_COLOR,
        "CRITICAL": CRITICAL_COLOR,
    }

    def format(self, record: logging.LogRecord) -> str:
        orig_levelname = record.levelname
        orig_name = record.name
        orig_trace = getattr(record, "trace_id", NO_TRACE)

        record.levelname = f"{self.LEVEL_COLORS.get(orig_levelname, '')}{orig_levelname}{RESET}"
        record.name = f"{LOGGER_COLOR}{orig_name}{RESET}"
        record.trace_id = f"{TRACE_COLOR}{orig_trace}{RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = orig_levelname
            record.name = orig_name
            record.trace_id = orig_trace


class MultiMCPHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """StreamHandler installed by :func:`setup_logger`."""

    def __init__(self) -> None:
        super().__init__()
        self.addFilter(_TraceDefaultFilter())


class StructuredJSONFormatter(logging.Formatter):
    """Serialize log records into one JSON object per line."""

    def __init__(self, serializer: JsonSerializer | None = None, *, datefmt: str | None = None) -> None:
        super().__init__(datefmt=datefmt)
        self._serializer = serializer or _default_json_serializer

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        trace_id = getattr(record, "trace_id", NO_TRACE)
        if trace_id != NO_TRACE:
            payload["trace_id"] = trace_id
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        extra = {key: value for key, value in record.__dict__.items() if key not in _BUILTIN_RECORD_KEYS}
        if extra:
            payload["context"] = extra
        return self._serializer(payload)


class TraceLoggerAdapter(logging.LoggerAdapter):  # type: ignore[type-arg]
    """Logger adapter that stamps every record with a trace id."""

    def __init__(self, logger: logging.Logger, trace_id: str) -> None:
        super().__init__(logger, {"trace_id": trace_id})

    @property
    def trace_id(self) -> str:
        return str(self.extra["trace_id"])  # type: ignore[index]

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("trace_id", self.trace_id)
        kwargs["extra"] = extra
        return msg, kwargs


def _default_json_serializer(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, default=str)


def _has_multimcp_handler(root: logging.Logger) -> bool:
    return any(isinstance(handler, MultiMCPHandler) for handler in root.handlers)


def _read_bool_env(key: str) -> bool:
    value = os.getenv(key)
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv(ENV_LOG_LEVEL) or os.getenv(ENV_LOG_LEVEL_FALLBACK)
        if not level:
            return logging.INFO

    if isinstance(level, int):
        return level

    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logger(
    *,
    level: int | str | None = None,
    use_json: bool | None = None,
    use_color: bool | None = None,
    json_serializer: JsonSerializer | None = None,
    fmt: str | None = None,
    datefmt: str | None = DEFAULT_DATEFMT,
    force: bool = False,
) -> None:
    """Configure the root logger.

    Args:
        level: Override the log level. Falls back to ``MULTIMCP_LOG_LEVEL``,
            then ``LOG_LEVEL``, then ``logging.INFO``.
        use_json: Emit JSON lines. Defaults to ``MULTIMCP_LOG_JSON``.
        use_color: Colorize plain output. Defaults to ``True`` unless
            ``NO_COLOR`` is set or JSON output is active.
        json_serializer: Replacement for ``json.dumps`` in JSON mode.
        fmt: Format string for plain-text logging.
        datefmt: Date format for both modes.
        force: Replace a previously installed multimcp handler.
    """
    root = logging.getLogger()

    if _has_multimcp_handler(root) and not force:
        return

    if force:
        for handler in list(root.handlers):
            if isinstance(handler, MultiMCPHandler):
                root.removeHandler(handler)
                handler.close()

    resolved_level = _resolve_level(level)
    root.setLevel(resolved_level)

    resolved_use_json = use_json if use_json is not None else _read_bool_env(ENV_LOG_JSON)
    if use_color is not None:
        resolved_use_color = use_color
    elif os.getenv(ENV_NO_COLOR):
        resolved_use_color = False
    else:
        resolved_use_color = not resolved_use_json

    handler = MultiMCPHandler()
    handler.setLevel(resolved_level)

    formatter: logging.Formatter
    if resolved_use_json:
        formatter = StructuredJSONFormatter(json_serializer, datefmt=datefmt)
    elif resolved_use_color:
        formatter = ColoredFormatter(fmt or DEFAULT_FORMAT, datefmt=datefmt)
    else:
        formatter = logging.Formatter(fmt or DEFAULT_FORMAT, datefmt=datefmt)

    handler.setFormatter(formatter)
    root.addHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a named logger, installing the default handler on first use."""
    root = logging.getLogger()
    if not _has_multimcp_handler(root):
        setup_logger()
    return logging.getLogger(name or DEFAULT_LOGGER_NAME)


def get_trace_logger(trace_id: str, name: str | None = None) -> TraceLoggerAdapter:
    """Return a logger whose records carry ``trace_id``."""
    return TraceLoggerAdapter(get_logger(name), trace_id)


__all__ = [
    "DEFAULT_LOGGER_NAME",
    "ColoredFormatter",
    "MultiMCPHandler",
    "StructuredJSONFormatter",
    "TraceLoggerAdapter",
    "get_logger",
    "get_trace_logger",
    "setup_logger",
]
