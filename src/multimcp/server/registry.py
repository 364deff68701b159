# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Keyed store for capability records."""

from __future__ import annotations

from collections.abc import Iterator
import threading
from typing import Generic, Protocol, TypeVar

from ..utils import get_logger


class KeyedRecord(Protocol):
    @property
    def key(self) -> str: ...


RecordT = TypeVar("RecordT", bound=KeyedRecord)


class CapabilityRegistry(Generic[RecordT]):
    """Insertion-ordered records keyed by ``record.key``; the last write wins."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._records: dict[str, RecordT] = {}
        self._lock = threading.Lock()
        self._logger = get_logger(f"multimcp.registry.{kind}")

    def register(self, record: RecordT) -> RecordT:
        with self._lock:
            replaced = record.key in self._records
            self._records[record.key] = record
        if replaced:
            self._logger.debug("%s %r re-registered; previous entry replaced", self.kind, record.key)
        else:
            self._logger.debug("%s registered: %s", self.kind, record.key)
        return record

    def get(self, key: str) -> RecordT | None:
        with self._lock:
            return self._records.get(key)

    def list(self) -> tuple[RecordT, ...]:
        with self._lock:
            return tuple(self._records.values())

    @property
    def names(self) -> list[str]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._records

    def __iter__(self) -> Iterator[RecordT]:
        return iter(self.list())


__all__ = ["CapabilityRegistry"]
