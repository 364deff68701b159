# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Group-prefix permission model.

A connection opened on ``/sse/jk/ftd`` carries the permission path
``("jk", "ftd")``. A capability registered as ``jk/ftd/buildProject`` belongs to
the group ``("jk", "ftd")``. The connection may see the capability when its
path is a prefix of the capability's group::

    >>> is_allowed(derive("jk/ftd"), derive("jk"))
    True
    >>> is_allowed(derive("jk"), derive("jk/ftd"))
    False

Unscoped connections (empty path) and ungrouped capabilities (empty group) are
always allowed.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol, TypeVar

from .utils import get_logger


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .server.session import Session

SEPARATOR = "/"
FLATTEN_CHAR = "_"

_logger = get_logger("multimcp.permissions")


class PermissionPath(tuple[str, ...]):
    """Immutable ordered sequence of hierarchy segments."""

    __slots__ = ()

    def __new__(cls, segments: Iterable[str] = ()) -> PermissionPath:
        return super().__new__(cls, (str(segment) for segment in segments))

    def __repr__(self) -> str:
        return f"PermissionPath({list(self)!r})"

    def __str__(self) -> str:
        return SEPARATOR.join(self)

    def is_prefix_of(self, other: Iterable[str]) -> bool:
        """Return ``True`` when every segment of ``self`` matches ``other`` index-wise."""
        other_path = other if isinstance(other, PermissionPath) else PermissionPath(other)
        if len(other_path) < len(self):
            return False
        return all(mine == theirs for mine, theirs in zip(self, other_path))


EMPTY_PATH = PermissionPath()


def derive(address: str | None) -> PermissionPath:
    """Split a raw connection address on ``/``; empty input gives the empty path."""
    if not address:
        return EMPTY_PATH
    return PermissionPath(address.split(SEPARATOR))


def group_from_name(name: str) -> PermissionPath:
    """Return the group of a capability name: every segment except the leaf."""
    if not name:
        return EMPTY_PATH
    parts = name.split(SEPARATOR)
    group = PermissionPath(parts[:-1]) if len(parts) > 1 else EMPTY_PATH
    _logger.debug("parsed capability group %r => %r", name, list(group))
    return group


def flatten_name(name: str) -> str:
    """Collapse a hierarchical name into a single protocol-facing identifier."""
    return name.replace(SEPARATOR, FLATTEN_CHAR)


def is_allowed(
    capability_group: Iterable[str],
    session_group: Iterable[str],
    enforcement_enabled: bool = True,
) -> bool:
    """Decide whether a session may see/invoke a capability.

    Rules are evaluated in order:

    1. enforcement disabled: allow;
    2. empty session group: allow;
    3. empty capability group: allow;
    4. capability group shorter than session group: deny;
    5. allow iff the session group is an index-wise prefix of the capability group.
    """
    if not enforcement_enabled:
        return True

    capability = capability_group if isinstance(capability_group, PermissionPath) else PermissionPath(capability_group)
    session = session_group if isinstance(session_group, PermissionPath) else PermissionPath(session_group)

    if not session:
        _logger.debug("permission check: unscoped session, allow %r", list(capability))
        return True
    if not capability:
        _logger.debug("permission check: ungrouped capability, allow for %r", list(session))
        return True
    if len(capability) < len(session):
        _logger.debug(
            "permission check: capability group %r shallower than session group %r, deny",
            list(capability),
            list(session),
        )
        return False

    for index, segment in enumerate(session):
        if capability[index] != segment:
            _logger.debug(
                "permission check: %r != %r at position %d, deny", capability[index], segment, index
            )
            return False
    return True


class GroupedRecord(Protocol):
    @property
    def group(self) -> PermissionPath: ...


RecordT = TypeVar("RecordT", bound=GroupedRecord)


class PermissionEngine:
    """Applies :func:`is_allowed` with a server-wide enforcement switch."""

    def __init__(self, *, enforce: bool = True) -> None:
        self.enforce = enforce

    def allows(self, record: GroupedRecord, session: Session | None) -> bool:
        session_path = session.permission_path if session is not None else EMPTY_PATH
        return is_allowed(record.group, session_path, self.enforce)

    def filter(self, records: Iterable[RecordT], session: Session | None) -> list[RecordT]:
        return [record for record in records if self.allows(record, session)]


__all__ = [
    "EMPTY_PATH",
    "PermissionEngine",
    "PermissionPath",
    "derive",
    "flatten_name",
    "group_from_name",
    "is_allowed",
]
