# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Group-prefix permission rules."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from multimcp.permissions import (
    EMPTY_PATH,
    PermissionEngine,
    PermissionPath,
    derive,
    flatten_name,
    group_from_name,
    is_allowed,
)
from multimcp.server import SessionRegistry
from tests.helpers import open_session


def test_derive_splits_address_on_slash() -> None:
    assert derive("jk/ftd") == PermissionPath(["jk", "ftd"])
    assert derive("calc") == ("calc",)
    assert derive("") == EMPTY_PATH
    assert derive(None) == EMPTY_PATH


def test_permission_path_renders_with_separator() -> None:
    path = derive("jk/ftd")
    assert str(path) == "jk/ftd"
    assert path.is_prefix_of(["jk", "ftd", "build"])
    assert not path.is_prefix_of(["jk"])


def test_group_from_name_drops_leaf() -> None:
    assert group_from_name("jk/ftd/buildProject") == ("jk", "ftd")
    assert group_from_name("calc/add") == ("calc",)
    assert group_from_name("echo") == EMPTY_PATH
    assert group_from_name("") == EMPTY_PATH


def test_flatten_name_replaces_separator() -> None:
    assert flatten_name("calc/add") == "calc_add"
    assert flatten_name("jk/ftd/buildProject") == "jk_ftd_buildProject"
    assert flatten_name("echo") == "echo"


@pytest.mark.parametrize(
    ("capability", "session", "expected"),
    [
        (["calc"], ["calc"], True),
        (["calc"], [], True),
        ([], ["calc"], True),
        ([], [], True),
        (["calc"], ["calc", "sub"], False),
        (["calc"], ["other"], False),
        (["jk", "ftd"], ["jk"], True),
        (["jk"], ["jk", "ftd"], False),
        (["jk", "ftd", "x"], ["jk", "bob"], False),
    ],
)
def test_is_allowed_prefix_rules(capability: list[str], session: list[str], expected: bool) -> None:
    assert is_allowed(capability, session) is expected


def test_is_allowed_is_reflexive() -> None:
    for address in ("a", "a/b", "a/b/c"):
        path = derive(address)
        assert is_allowed(path, path)


def test_disabled_enforcement_allows_everything() -> None:
    assert is_allowed(["calc"], ["other"], enforcement_enabled=False)
    assert is_allowed(["calc"], ["calc", "sub"], False)


def test_engine_filters_records_for_session() -> None:
    registry = SessionRegistry()
    scoped = open_session(registry, "calc")
    records = [
        SimpleNamespace(name="calc/add", group=group_from_name("calc/add")),
        SimpleNamespace(name="weather/now", group=group_from_name("weather/now")),
        SimpleNamespace(name="echo", group=group_from_name("echo")),
    ]

    engine = PermissionEngine()
    assert [record.name for record in engine.filter(records, scoped)] == ["calc/add", "echo"]
    assert [record.name for record in engine.filter(records, None)] == ["calc/add", "weather/now", "echo"]

    permissive = PermissionEngine(enforce=False)
    assert len(permissive.filter(records, scoped)) == 3


def test_cleared_session_sees_everything() -> None:
    registry = SessionRegistry()
    scoped = open_session(registry, "calc/sub")
    record = SimpleNamespace(group=group_from_name("calc/add"))

    engine = PermissionEngine()
    assert not engine.allows(record, scoped)
    scoped.clear_permission_path()
    assert engine.allows(record, scoped)
