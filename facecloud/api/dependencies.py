"""FastAPI dependencies shared across the public API."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Cookie, Depends, Header, HTTPException, status

from ..auth import get_auth_manager, require_auth, unauthorized
from ..auth.provider import SessionStore, SupabaseIdentityProvider
from ..db import DatabaseClient, get_admin_database_client, get_user_database_client
from ..metrics.service import MetricsService, get_metrics_service
from ..services.session_storage import SessionStorage, get_session_registry
from ..workflow.drafts import DraftStore

SESSION_COOKIE = "facecloud_session"


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise unauthorized("Authorization header required")
    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer":
        raise unauthorized("Invalid authorization header")
    token = token.strip()
    if not token:
        raise unauthorized("Invalid authorization token")
    return token


def get_current_user_id(authorization: str = Header(None)) -> str:
    """User id of the staff member calling the API."""

    _bearer_token(authorization)
    return require_auth(authorization)


def get_user_database(authorization: str = Header(None)) -> DatabaseClient:
    """Per-request client carrying the caller's JWT, so row-level policies apply to them."""

    return get_user_database_client(_bearer_token(authorization))


def get_admin_database() -> DatabaseClient:
    """Service-role client used for invitations and clinic assignments."""

    return get_admin_database_client()


def get_database_with_user(
    user_id: str = Depends(get_current_user_id),
    db: DatabaseClient = Depends(get_user_database),
) -> tuple[str, DatabaseClient]:
    return user_id, db


def get_authenticated_user(authorization: str = Header(None)) -> Dict[str, Any]:
    """The caller's ``id``, ``email`` and user ``metadata`` (always a dict)."""

    user = get_auth_manager().get_user_from_token(_bearer_token(authorization))
    if not user or not user.get("id"):
        raise unauthorized("Invalid or expired token")
    metadata = user.get("metadata")
    return {
        "id": user["id"],
        "email": user.get("email"),
        "metadata": metadata if isinstance(metadata, dict) else {},
    }


def get_optional_session_id(
    x_session_id: Optional[str] = Header(None),
    facecloud_session: Optional[str] = Cookie(None),
) -> Optional[str]:
    """The browser session id, from the ``X-Session-Id`` header or the session cookie."""

    return (x_session_id or facecloud_session or "").strip() or None


def get_session_id(session_id: Optional[str] = Depends(get_optional_session_id)) -> str:
    if not session_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Session-Id header required",
        )
    return session_id


def get_session_storage(session_id: str = Depends(get_session_id)) -> SessionStorage:
    return get_session_registry().get(session_id)


def get_draft_store(storage: SessionStorage = Depends(get_session_storage)) -> DraftStore:
    """One draft store per browser session, so debounce timers survive across requests."""

    return storage.scoped("drafts", DraftStore)


def get_session_drafts(session_id: Optional[str] = Depends(get_optional_session_id)) -> Optional[DraftStore]:
    """Drafts of an already open browser session, or None. Never opens a session."""

    storage = get_session_registry().find(session_id)
    return get_draft_store(storage) if storage is not None else None


def get_session_store(storage: SessionStorage = Depends(get_session_storage)) -> SessionStore:
    return SessionStore(storage)


def get_identity_provider() -> SupabaseIdentityProvider:
    """A fresh provider per request; the SDK client holds the session it exchanges."""

    return SupabaseIdentityProvider()


def get_metrics() -> MetricsService:
    return get_metrics_service()
