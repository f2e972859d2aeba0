"""
Form drafts kept in session storage.

Drafts are a convenience: anything that goes wrong while encoding or decoding
one is logged and treated as "no draft", never surfaced to the user. Writes are
debounced so that bursts of edits collapse into a single trailing write of the
latest state; intermediate states are not guaranteed to reach storage.
"""

from __future__ import annotations

import itertools
import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..config import CONFIG
from ..errors import SerializationError
from ..services.session_storage import SessionStorage

logger = logging.getLogger(__name__)

DRAFT_KEY_PREFIX = "form_draft:"

TimerFactory = Callable[[float, Callable[..., None], Tuple[Any, ...]], Any]


def _default_timer(interval: float, function: Callable[..., None], args: Tuple[Any, ...]) -> threading.Timer:
    timer = threading.Timer(interval, function, args=args)
    timer.daemon = True
    return timer


@dataclass
class FormDraft:
    session_key: str
    step_index: int = 0
    fields: Dict[str, Any] = field(default_factory=dict)
    attachments: List[str] = field(default_factory=list)
    saved_at: float = 0.0

    def to_json(self) -> str:
        try:
            return json.dumps(
                {
                    "session_key": self.session_key,
                    "step_index": self.step_index,
                    "fields": self.fields,
                    "attachments": self.attachments,
                    "saved_at": self.saved_at,
                }
            )
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Draft {self.session_key} is not JSON serialisable: {exc}") from exc

    @classmethod
    def from_json(cls, raw: str) -> "FormDraft":
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Stored draft is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("fields"), dict):
            raise SerializationError("Stored draft has an unexpected shape")
        try:
            return cls(
                session_key=str(payload["session_key"]),
                step_index=int(payload.get("step_index") or 0),
                fields=payload["fields"],
                attachments=[str(path) for path in payload.get("attachments") or []],
                saved_at=float(payload.get("saved_at") or 0.0),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise SerializationError(f"Stored draft is incomplete: {exc}") from exc


def is_binary(value: Any) -> bool:
    """Bytes-like payloads and open file objects cannot round-trip through JSON."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return True
    return callable(getattr(value, "read", None))


def strip_binary(value: Any, path: str = "") -> Tuple[Any, List[str]]:
    """
    Return a copy of ``value`` without binary leaves, and the dotted paths removed.

    Removed fields are dropped from their container; the returned path list is
    the placeholder reference kept alongside the draft so a restored form can
    ask the user to re-attach them.
    """
    if isinstance(value, Mapping):
        cleaned: Dict[str, Any] = {}
        removed: List[str] = []
        for key, item in value.items():
            child_path = f"{path}.{key}" if path else str(key)
            if is_binary(item):
                removed.append(child_path)
                continue
            child, child_removed = strip_binary(item, child_path)
            cleaned[str(key)] = child
            removed.extend(child_removed)
        return cleaned, removed
    if isinstance(value, (list, tuple)):
        items: List[Any] = []
        removed = []
        for index, item in enumerate(value):
            child_path = f"{path}.{index}" if path else str(index)
            if is_binary(item):
                removed.append(child_path)
                continue
            child, child_removed = strip_binary(item, child_path)
            items.append(child)
            removed.extend(child_removed)
        return items, removed
    return value, []


class DraftStore:
    """Debounced draft persistence on top of one session's storage."""

    def __init__(
        self,
        storage: SessionStorage,
        *,
        debounce_seconds: Optional[float] = None,
        timer_factory: TimerFactory = _default_timer,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.storage = storage
        self.debounce_seconds = (
            CONFIG.draft_debounce_seconds if debounce_seconds is None else max(float(debounce_seconds), 0.0)
        )
        self._timer_factory = timer_factory
        self._clock = clock
        self._pending: Dict[str, str] = {}
        self._timers: Dict[str, Any] = {}
        self._generations: Dict[str, int] = {}
        self._counter = itertools.count(1)
        self._lock = threading.RLock()

    @staticmethod
    def storage_key(session_key: str) -> str:
        return f"{DRAFT_KEY_PREFIX}{session_key}"

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def save(self, session_key: str, state: Mapping[str, Any], step_index: int = 0) -> bool:
        """Schedule a write of ``state``. Returns False when it could not be serialised."""
        fields, attachments = strip_binary(dict(state))
        draft = FormDraft(
            session_key=session_key,
            step_index=step_index,
            fields=fields,
            attachments=attachments,
            saved_at=self._clock(),
        )
        try:
            encoded = draft.to_json()
        except SerializationError as exc:
            logger.debug("Dropping draft write: %s", exc)
            return False

        with self._lock:
            self._pending[session_key] = encoded
            previous = self._timers.pop(session_key, None)
            if previous is not None:
                previous.cancel()
            if self.debounce_seconds <= 0:
                self._write(session_key)
                return True
            generation = next(self._counter)
            self._generations[session_key] = generation
            timer = self._timer_factory(self.debounce_seconds, self._fire, (session_key, generation))
            self._timers[session_key] = timer
            timer.start()
        return True

    def _fire(self, session_key: str, generation: int) -> None:
        # A timer that lost the race with a newer save must not write or unhook it.
        with self._lock:
            if self._generations.get(session_key) != generation:
                return
            self._write(session_key)

    def _write(self, session_key: str) -> None:
        with self._lock:
            self._timers.pop(session_key, None)
            self._generations.pop(session_key, None)
            encoded = self._pending.pop(session_key, None)
            if encoded is None:
                return
            self.storage.set(self.storage_key(session_key), encoded)
        logger.debug("Draft %s written to session storage", session_key)

    def flush(self, session_key: Optional[str] = None) -> None:
        """Write pending drafts now instead of waiting for the debounce timer."""
        with self._lock:
            keys = [session_key] if session_key is not None else list(self._pending)
            for key in keys:
                timer = self._timers.pop(key, None)
                if timer is not None:
                    timer.cancel()
                self._write(key)

    def cancel_pending(self) -> None:
        """Drop writes that have not fired yet (the form is being torn down)."""
        with self._lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
            self._generations.clear()
            self._pending.clear()

    def close(self) -> None:
        """The owning session ended; pending writes are dropped."""
        self.cancel_pending()

    def clear(self, session_key: str) -> None:
        with self._lock:
            timer = self._timers.pop(session_key, None)
            if timer is not None:
                timer.cancel()
            self._generations.pop(session_key, None)
            self._pending.pop(session_key, None)
            self.storage.delete(self.storage_key(session_key))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def restore(self, session_key: str) -> Optional[FormDraft]:
        with self._lock:
            raw = self._pending.get(session_key)
            if raw is None:
                raw = self.storage.get(self.storage_key(session_key))
        if raw is None:
            return None
        try:
            return FormDraft.from_json(raw)
        except SerializationError as exc:
            logger.debug("Ignoring unreadable draft %s: %s", session_key, exc)
            return None

    def load(self, session_key: str, default: Any = None) -> Any:
        draft = self.restore(session_key)
        if draft is None:
            return default
        return draft.fields

    def has_pending(self, session_key: str) -> bool:
        with self._lock:
            return session_key in self._pending


__all__ = ["DRAFT_KEY_PREFIX", "DraftStore", "FormDraft", "is_binary", "strip_binary"]
