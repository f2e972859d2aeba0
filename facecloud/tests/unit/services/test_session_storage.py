"""Tests for session-scoped storage."""

from __future__ import annotations

import pytest

from facecloud.services.session_storage import SessionStorage, SessionStorageRegistry


def test_storage_only_accepts_strings(session_storage: SessionStorage) -> None:
    session_storage.set("form_draft:new-clinic", "{}")

    with pytest.raises(TypeError):
        session_storage.set("count", 3)

    assert session_storage.keys("form_draft:") == ["form_draft:new-clinic"]
    assert session_storage.delete("form_draft:new-clinic") is True
    assert session_storage.delete("form_draft:new-clinic") is False


def test_registry_isolates_sessions() -> None:
    registry = SessionStorageRegistry()
    first = registry.get("tab-1")
    first.set("ui.preferences", "{}")

    assert registry.get("tab-1") is first
    assert registry.get("tab-2").get("ui.preferences") is None
    assert registry.active_sessions() == ["tab-1", "tab-2"]


def test_ending_a_session_discards_its_data() -> None:
    registry = SessionStorageRegistry()
    storage = registry.get("tab-1")
    storage.set("auth.session", "{}")

    assert registry.end("tab-1") is True
    assert len(storage) == 0
    assert registry.get("tab-1") is not storage
    assert registry.end("unknown") is False


def test_registry_requires_session_id() -> None:
    with pytest.raises(ValueError):
        SessionStorageRegistry().get("")


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class Closable:
    def __init__(self, storage: SessionStorage) -> None:
        self.storage = storage
        self.closed = False

    def close(self) -> None:
        self.closed = True


def test_idle_sessions_are_ended_on_next_access() -> None:
    clock = FakeClock()
    registry = SessionStorageRegistry(idle_seconds=60, clock=clock)
    stale = registry.get("tab-1")
    stale.set("auth.session", "{}")
    resource = stale.scoped("drafts", Closable)

    clock.now += 30
    registry.get("tab-2")
    clock.now += 45
    registry.get("tab-2")

    assert registry.active_sessions() == ["tab-2"]
    assert len(stale) == 0
    assert resource.closed is True


def test_registry_evicts_least_recently_used_at_capacity() -> None:
    clock = FakeClock()
    registry = SessionStorageRegistry(max_sessions=3, clock=clock)
    for index in range(3):
        registry.get(f"tab-{index}")
        clock.now += 1
    registry.get("tab-0")

    for index in range(100):
        registry.get(f"random-{index}")

    assert len(registry.active_sessions()) == 3
    assert registry.active_sessions() == ["random-97", "random-98", "random-99"]


def test_find_does_not_create_sessions() -> None:
    registry = SessionStorageRegistry()

    assert registry.find("tab-1") is None
    assert registry.find(None) is None
    assert registry.active_sessions() == []

    storage = registry.get("tab-1")
    assert registry.find("tab-1") is storage


def test_scoped_objects_are_created_once_and_closed_on_end(session_storage: SessionStorage) -> None:
    first = session_storage.scoped("drafts", Closable)

    assert session_storage.scoped("drafts", Closable) is first

    session_storage.end()

    assert first.closed is True
    assert session_storage.scoped("drafts", Closable) is not first
