"""
Session-scoped key-value storage.

Mirrors browser ``sessionStorage`` semantics: values are strings, keyed per
browser session, and everything disappears when the session ends. Drafts, the
auth session and persisted UI preferences all live here.

The registry holding the sessions is bounded. Sessions idle for longer than
``SESSION_IDLE_SECONDS`` are ended on the next access, and once
``SESSION_MAX_ACTIVE`` sessions exist the least recently used one is ended to
make room for a new id.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from ..config import CONFIG

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionStorage:
    """Thread-safe string store for a single browser session."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self._items: Dict[str, str] = {}
        self._scoped: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError("SessionStorage only stores strings")
        with self._lock:
            self._items[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._items.pop(key, None) is not None

    def keys(self, prefix: str = "") -> List[str]:
        with self._lock:
            return sorted(key for key in self._items if key.startswith(prefix))

    def scoped(self, name: str, factory: Callable[["SessionStorage"], T]) -> T:
        """
        Return the per-session object registered under ``name``, creating it on first use.

        Objects with a ``close()`` method are closed when the session ends.
        """
        with self._lock:
            value = self._scoped.get(name)
            if value is None:
                value = factory(self)
                self._scoped[name] = value
            return value

    def end(self) -> None:
        """Drop everything, as closing the tab would."""
        with self._lock:
            self._items.clear()
            scoped = list(self._scoped.values())
            self._scoped.clear()
        for value in scoped:
            close = getattr(value, "close", None)
            if callable(close):
                close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class SessionStorageRegistry:
    """Hands out one :class:`SessionStorage` per session id, within an idle TTL and a size cap."""

    def __init__(
        self,
        *,
        idle_seconds: Optional[float] = None,
        max_sessions: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.idle_seconds = CONFIG.session_idle_seconds if idle_seconds is None else float(idle_seconds)
        self.max_sessions = CONFIG.session_max_active if max_sessions is None else max(int(max_sessions), 1)
        self._clock = clock
        # Least recently used first.
        self._sessions: "OrderedDict[str, Tuple[SessionStorage, float]]" = OrderedDict()
        self._lock = threading.Lock()

    def _expire(self, now: float) -> List[SessionStorage]:
        expired: List[SessionStorage] = []
        while self._sessions:
            session_id, (storage, seen) = next(iter(self._sessions.items()))
            if now - seen <= self.idle_seconds:
                break
            del self._sessions[session_id]
            expired.append(storage)
        return expired

    def get(self, session_id: str) -> SessionStorage:
        if not session_id:
            raise ValueError("session_id is required")
        now = self._clock()
        with self._lock:
            ended = self._expire(now)
            entry = self._sessions.pop(session_id, None)
            if entry is None:
                while len(self._sessions) >= self.max_sessions:
                    _, (oldest, _) = self._sessions.popitem(last=False)
                    ended.append(oldest)
                storage = SessionStorage(session_id)
            else:
                storage = entry[0]
            self._sessions[session_id] = (storage, now)
        self._end_all(ended)
        return storage

    def find(self, session_id: Optional[str]) -> Optional[SessionStorage]:
        """The live storage for ``session_id`` without creating one."""
        if not session_id:
            return None
        now = self._clock()
        with self._lock:
            ended = self._expire(now)
            entry = self._sessions.pop(session_id, None)
            if entry is not None:
                self._sessions[session_id] = (entry[0], now)
        self._end_all(ended)
        return entry[0] if entry is not None else None

    def end(self, session_id: str) -> bool:
        with self._lock:
            entry = self._sessions.pop(session_id, None)
        if entry is None:
            return False
        entry[0].end()
        return True

    def active_sessions(self) -> List[str]:
        with self._lock:
            return sorted(self._sessions)

    @staticmethod
    def _end_all(storages: List[SessionStorage]) -> None:
        for storage in storages:
            logger.debug("Ending idle or evicted session %s", storage.session_id)
            storage.end()


_registry: Optional[SessionStorageRegistry] = None


def get_session_registry() -> SessionStorageRegistry:
    """Return the process-wide registry."""
    global _registry
    if _registry is None:
        _registry = SessionStorageRegistry()
    return _registry


__all__ = ["SessionStorage", "SessionStorageRegistry", "get_session_registry"]
