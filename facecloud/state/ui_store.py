"""
UI state for the dashboard shell.

One explicit store per browser session replaces the sidebar context and the
clinic store: callers read, write and subscribe here instead of reaching for
globals. Only the preferences worth keeping across page loads (timeframe and
the collapsed sidebar) are written to session storage.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from ..metrics.cache import Timeframe
from ..services.session_storage import SessionStorage

logger = logging.getLogger(__name__)

PREFERENCES_KEY = "ui.preferences"
PERSISTED_FIELDS = ("sidebar_collapsed", "timeframe")
MOBILE_BREAKPOINT = 768

Listener = Callable[[str, Any, Any], None]


def _defaults() -> Dict[str, Any]:
    return {
        "sidebar_open": False,
        "sidebar_collapsed": False,
        "timeframe": Timeframe.MONTH.value,
        "path": None,
    }


class UiStateStore:
    def __init__(self, storage: Optional[SessionStorage] = None) -> None:
        self.storage = storage
        self._state = _defaults()
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()
        self._load()

    def _load(self) -> None:
        if self.storage is None:
            return
        raw = self.storage.get(PREFERENCES_KEY)
        if not raw:
            return
        try:
            saved = json.loads(raw)
        except ValueError:
            logger.debug("Ignoring unreadable UI preferences")
            return
        if not isinstance(saved, dict):
            return
        if "sidebar_collapsed" in saved:
            self._state["sidebar_collapsed"] = bool(saved["sidebar_collapsed"])
        if "timeframe" in saved:
            self._state["timeframe"] = Timeframe.coerce(saved["timeframe"]).value

    def _persist(self) -> None:
        if self.storage is None:
            return
        payload = {field: self._state[field] for field in PERSISTED_FIELDS}
        self.storage.set(PREFERENCES_KEY, json.dumps(payload))

    # ------------------------------------------------------------------
    # Read / write
    # ------------------------------------------------------------------
    def get(self, field: str) -> Any:
        with self._lock:
            if field not in self._state:
                raise KeyError(field)
            return self._state[field]

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._state)

    def set(self, field: str, value: Any) -> None:
        self.update(**{field: value})

    def update(self, **changes: Any) -> None:
        unknown = set(changes) - set(self._state)
        if unknown:
            raise KeyError(f"Unknown UI state fields: {sorted(unknown)}")
        if "timeframe" in changes:
            changes["timeframe"] = Timeframe.coerce(changes["timeframe"]).value

        with self._lock:
            changed = []
            for field, value in changes.items():
                old = self._state[field]
                if old == value:
                    continue
                self._state[field] = value
                changed.append((field, old, value))
            if any(field in PERSISTED_FIELDS for field, _, _ in changed):
                self._persist()
            listeners = list(self._listeners)

        for field, old, new in changed:
            for listener in listeners:
                try:
                    listener(field, old, new)
                except Exception:
                    logger.exception("UI state listener failed for %s", field)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Sidebar
    # ------------------------------------------------------------------
    def toggle_sidebar(self) -> bool:
        with self._lock:
            value = not self._state["sidebar_open"]
        self.set("sidebar_open", value)
        return value

    def toggle_collapsed(self) -> bool:
        with self._lock:
            value = not self._state["sidebar_collapsed"]
        self.set("sidebar_collapsed", value)
        return value

    def navigate(self, path: str) -> None:
        """A route change closes the mobile sidebar."""
        self.update(path=path, sidebar_open=False)

    def resize(self, width: int) -> None:
        # The collapsed rail is a desktop affordance.
        if width < MOBILE_BREAKPOINT:
            self.set("sidebar_collapsed", False)


__all__ = ["Listener", "MOBILE_BREAKPOINT", "PREFERENCES_KEY", "UiStateStore"]
