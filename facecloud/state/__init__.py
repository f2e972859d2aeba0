"""Per-session UI state."""

from .ui_store import UiStateStore

__all__ = ["UiStateStore"]
