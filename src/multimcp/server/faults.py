# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Process-level fault reporting.

:class:`FaultMonitor` is installed as the event loop's exception handler so
exceptions nobody awaited are logged instead of printed to stderr. By default
the process keeps running. With ``max_faults`` set, the monitor calls its
``on_exhausted`` callback once the count goes past that limit; the HTTP
transport uses it to ask uvicorn to shut down.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging
from typing import Any

from ..utils import get_logger


class FaultMonitor:
    def __init__(
        self,
        *,
        max_faults: int | None = None,
        on_exhausted: Callable[[], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.max_faults = max_faults
        self.on_exhausted = on_exhausted
        self.faults = 0
        self._escalated = False
        self._logger = logger or get_logger("multimcp.faults")
        self._loop: asyncio.AbstractEventLoop | None = None
        self._previous: Any = None

    @property
    def escalated(self) -> bool:
        return self._escalated

    def install(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        loop = loop or asyncio.get_running_loop()
        self._loop = loop
        self._previous = loop.get_exception_handler()
        loop.set_exception_handler(self.handle)

    def uninstall(self) -> None:
        if self._loop is not None:
            self._loop.set_exception_handler(self._previous)
            self._loop = None
            self._previous = None

    def handle(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        """Loop exception handler: log the fault and escalate past the limit."""
        self.faults += 1
        exception = context.get("exception")
        message = context.get("message", "unhandled exception")
        if exception is not None:
            self._logger.error(
                "unhandled fault #%d: %s",
                self.faults,
                message,
                exc_info=(type(exception), exception, exception.__traceback__),
            )
        else:
            self._logger.error("unhandled fault #%d: %s", self.faults, message)

        if self.max_faults is None or self._escalated or self.faults <= self.max_faults:
            return

        self._escalated = True
        self._logger.critical("fault limit %d exceeded; shutting down", self.max_faults)
        if self.on_exhausted is not None:
            self.on_exhausted()


__all__ = ["FaultMonitor"]
