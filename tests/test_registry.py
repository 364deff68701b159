# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Capability and session registries."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import threading
from types import MappingProxyType, SimpleNamespace

import pytest

from multimcp.permissions import flatten_name, group_from_name
from multimcp.server import Session, SessionRegistry
from multimcp.server.registry import CapabilityRegistry
from multimcp.tool import ToolSpec
from tests.helpers import DummySession, FakeTransport, open_session, run_with_context


def _first() -> str:
    return "first"


def _second() -> str:
    return "second"


def test_capability_registry_last_write_wins() -> None:
    registry: CapabilityRegistry[ToolSpec] = CapabilityRegistry("tool")
    registry.register(ToolSpec(name="calc/add", fn=_first))
    registry.register(ToolSpec(name="echo", fn=_first))
    registry.register(ToolSpec(name="calc/add", fn=_second))

    assert len(registry) == 2
    assert registry.names == ["calc_add", "echo"]
    assert registry.get("calc_add").fn is _second
    assert "echo" in registry
    assert registry.get("missing") is None


def test_capability_registry_list_is_a_snapshot() -> None:
    registry: CapabilityRegistry[ToolSpec] = CapabilityRegistry("tool")
    registry.register(ToolSpec(name="a", fn=_first))

    snapshot = registry.list()
    registry.register(ToolSpec(name="b", fn=_first))

    assert [spec.name for spec in snapshot] == ["a"]
    assert [spec.name for spec in registry] == ["a", "b"]


def test_session_carries_address_and_query() -> None:
    transport = FakeTransport("abc")
    session = Session(transport, "jk/ftd", request_query={"user": "ada"})

    assert session.session_id == "abc"
    assert session.address == "jk/ftd"
    assert session.permission_path == ("jk", "ftd")
    assert session.transport is transport
    assert session.request_query == {"user": "ada"}
    assert isinstance(session.request_query, MappingProxyType)
    with pytest.raises(TypeError):
        session.request_query["user"] = "eve"  # type: ignore[index]


def test_session_metadata_and_clear() -> None:
    session = Session(FakeTransport(), "calc")
    session.set_metadata("tenant", "acme")

    assert session.get_metadata("tenant") == "acme"
    assert session.get_metadata("missing", 7) == 7

    session.clear_permission_path()
    assert session.permission_path == ()
    assert session.address == "calc"


def test_session_runtime_is_weak() -> None:
    session = Session(FakeTransport())
    runtime = DummySession()
    session.attach_runtime(runtime)  # type: ignore[arg-type]

    assert session.runtime is runtime
    del runtime
    assert session.runtime is None


def test_registry_register_get_remove() -> None:
    registry = SessionRegistry()
    session = open_session(registry, "calc", session_id="s1", query={"k": "v"})

    assert registry.get("s1") is session
    assert "s1" in registry
    assert len(registry) == 1
    assert list(registry) == [session]
    assert registry.request_query("s1") == {"k": "v"}

    assert registry.remove("s1") is session
    assert registry.remove("s1") is None
    assert registry.get("s1") is None
    assert registry.count() == 0


def test_registry_unknown_session() -> None:
    registry = SessionRegistry()

    assert registry.get(None) is None
    assert registry.get("") is None
    assert registry.get("nope") is None
    assert registry.request_query("nope") == {}


def test_registry_snapshot_is_independent() -> None:
    registry = SessionRegistry()
    first = open_session(registry, session_id="a")
    snapshot = registry.snapshot()
    open_session(registry, session_id="b")

    assert snapshot == (first,)
    assert registry.count() == 2


@pytest.mark.anyio
async def test_registry_current_reads_session_id_from_request() -> None:
    registry = SessionRegistry()
    session = open_session(registry, "calc", session_id="live")

    async def lookup() -> Session | None:
        return registry.current()

    assert await run_with_context(DummySession(), lookup, session_id="live") is session
    assert await run_with_context(DummySession(), lookup, session_id="gone") is None
    assert await run_with_context(DummySession(), lookup) is None
    assert registry.current() is None


def test_capability_registry_under_concurrent_writers() -> None:
    registry: CapabilityRegistry[ToolSpec] = CapabilityRegistry("tool")
    stop = threading.Event()
    torn: list[ToolSpec] = []

    def write(worker: int) -> None:
        for index in range(200):
            registry.register(ToolSpec(name=f"team{worker}/tool{index}", fn=_first))
            registry.register(ToolSpec(name="shared/tool", fn=_second if index % 2 else _first))

    def read() -> None:
        while not stop.is_set():
            for spec in registry.list():
                if spec.key != flatten_name(spec.name) or spec.group != group_from_name(spec.name):
                    torn.append(spec)
            registry.get("shared_tool")

    with ThreadPoolExecutor(max_workers=6) as pool:
        readers = [pool.submit(read) for _ in range(2)]
        writers = [pool.submit(write, worker) for worker in range(4)]
        for future in writers:
            future.result()
        stop.set()
        for future in readers:
            future.result()

    assert torn == []
    assert len(registry) == 4 * 200 + 1
    assert len(registry.names) == len(set(registry.names))


def test_session_registry_under_concurrent_churn() -> None:
    registry = SessionRegistry()

    def churn(worker: int) -> None:
        for index in range(200):
            session_id = f"w{worker}-{index}"
            registry.register(Session(SimpleNamespace(session_id=session_id), f"team{worker}"))  # type: ignore[arg-type]
            assert registry.get(session_id).address == f"team{worker}"
            snapshot = registry.snapshot()
            assert all(session.session_id for session in snapshot)
            if index % 2:
                assert registry.remove(session_id) is not None
                assert registry.remove(session_id) is None

    with ThreadPoolExecutor(max_workers=8) as pool:
        for future in [pool.submit(churn, worker) for worker in range(8)]:
            future.result()

    assert registry.count() == 8 * 100
    assert len(registry.snapshot()) == 8 * 100
    assert all(session.session_id.split("-")[1].isdigit() for session in registry)
