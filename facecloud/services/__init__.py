"""
Domain services.

Submodules are imported directly (``from facecloud.services import clinics``)
so that session storage stays importable from the workflow core.
"""

from .session_storage import SessionStorage, SessionStorageRegistry, get_session_registry

__all__ = ["SessionStorage", "SessionStorageRegistry", "get_session_registry"]
