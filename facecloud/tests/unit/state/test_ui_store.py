"""Tests for the dashboard UI state store."""

from __future__ import annotations

import json

import pytest

from facecloud.services.session_storage import SessionStorage
from facecloud.state.ui_store import PREFERENCES_KEY, UiStateStore


def test_defaults_without_storage() -> None:
    store = UiStateStore()

    assert store.snapshot() == {
        "sidebar_open": False,
        "sidebar_collapsed": False,
        "timeframe": "month",
        "path": None,
    }


def test_listeners_fire_only_on_change() -> None:
    store = UiStateStore()
    events = []
    unsubscribe = store.subscribe(lambda field, old, new: events.append((field, old, new)))

    store.set("timeframe", "week")
    store.set("timeframe", "week")
    unsubscribe()
    store.set("timeframe", "day")

    assert events == [("timeframe", "month", "week")]


def test_failing_listener_does_not_block_others() -> None:
    store = UiStateStore()
    seen = []

    def _broken(field, old, new):
        raise RuntimeError("listener bug")

    store.subscribe(_broken)
    store.subscribe(lambda field, old, new: seen.append(field))

    assert store.toggle_sidebar() is True
    assert seen == ["sidebar_open"]


def test_preferences_persist_across_stores(session_storage: SessionStorage) -> None:
    store = UiStateStore(session_storage)
    store.update(timeframe="YEAR", sidebar_open=True)
    store.toggle_collapsed()

    assert json.loads(session_storage.get(PREFERENCES_KEY)) == {"sidebar_collapsed": True, "timeframe": "year"}

    reloaded = UiStateStore(session_storage)
    assert reloaded.get("timeframe") == "year"
    assert reloaded.get("sidebar_collapsed") is True
    assert reloaded.get("sidebar_open") is False


def test_navigate_closes_mobile_sidebar() -> None:
    store = UiStateStore()
    store.toggle_sidebar()

    store.navigate("/clinics/abc")

    assert store.get("path") == "/clinics/abc"
    assert store.get("sidebar_open") is False


def test_resize_to_mobile_expands_collapsed_sidebar() -> None:
    store = UiStateStore()
    store.toggle_collapsed()

    store.resize(1280)
    assert store.get("sidebar_collapsed") is True

    store.resize(500)
    assert store.get("sidebar_collapsed") is False


def test_unknown_fields_are_rejected() -> None:
    store = UiStateStore()

    with pytest.raises(KeyError):
        store.get("theme")

    with pytest.raises(KeyError):
        store.update(theme="dark")


def test_unreadable_preferences_are_ignored(session_storage: SessionStorage) -> None:
    session_storage.set(PREFERENCES_KEY, "{oops")

    assert UiStateStore(session_storage).get("timeframe") == "month"
