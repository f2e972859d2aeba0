"""
Identity provider adapter and the per-browser-session auth session store.

The provider is the only place that talks to Supabase Auth for token
exchanges. It wraps the synchronous SDK in worker threads so the recovery flow
can apply timeouts without blocking the event loop.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol

from supabase import Client, create_client

from ..config import CONFIG
from ..errors import AuthExchangeError, SerializationError
from ..services.session_storage import SessionStorage

logger = logging.getLogger(__name__)

SESSION_KEY = "auth.session"
CONSUMED_TOKENS_KEY = "auth.consumed_tokens"

AuthStateCallback = Callable[[str, Optional["Session"]], None]
Unsubscribe = Callable[[], None]


@dataclass
class Session:
    access_token: str
    refresh_token: str
    user_id: str
    email: Optional[str] = None
    expires_at: Optional[int] = None
    first_sign_in: bool = False
    user_metadata: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str) -> "Session":
        try:
            payload = json.loads(raw)
            return cls(**payload)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Stored auth session is unreadable: {exc}") from exc


class IdentityProvider(Protocol):
    async def verify_token(self, token_hash: str, token_type: str) -> Session: ...

    async def exchange_code_for_session(self, code: str) -> Session: ...

    async def get_current_user(self) -> Optional[Dict[str, Any]]: ...

    def on_auth_state_change(self, callback: AuthStateCallback) -> Unsubscribe: ...


def _attr(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def session_from_auth_response(response: Any) -> Session:
    """Build a :class:`Session` from a Supabase ``AuthResponse``."""
    supa_session = _attr(response, "session")
    supa_user = _attr(response, "user") or _attr(supa_session, "user")
    if not supa_session or not supa_user:
        raise AuthExchangeError("Authentication completed but no session was returned")

    last_sign_in = _attr(supa_user, "last_sign_in_at")
    confirmed = _attr(supa_user, "confirmed_at") or _attr(supa_user, "email_confirmed_at")
    return Session(
        access_token=_attr(supa_session, "access_token"),
        refresh_token=_attr(supa_session, "refresh_token"),
        user_id=str(_attr(supa_user, "id")),
        email=_attr(supa_user, "email"),
        expires_at=_attr(supa_session, "expires_at"),
        first_sign_in=last_sign_in is None or (
            isinstance(last_sign_in, datetime) and isinstance(confirmed, datetime) and last_sign_in <= confirmed
        ),
        user_metadata=dict(_attr(supa_user, "user_metadata") or {}),
    )


class SupabaseIdentityProvider:
    """:class:`IdentityProvider` backed by the Supabase Python SDK."""

    def __init__(self, client: Optional[Client] = None) -> None:
        if client is None:
            if not CONFIG.supabase_url or not CONFIG.supabase_anon_key:
                raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY environment variables are required")
            # One client per provider: the SDK keeps the session it exchanges.
            client = create_client(CONFIG.supabase_url, CONFIG.supabase_anon_key)
        self.client = client

    async def verify_token(self, token_hash: str, token_type: str) -> Session:
        try:
            response = await asyncio.to_thread(
                self.client.auth.verify_otp, {"token_hash": token_hash, "type": token_type}
            )
        except Exception as exc:
            raise AuthExchangeError(f"Authentication failed: {exc}") from exc
        return session_from_auth_response(response)

    async def exchange_code_for_session(self, code: str) -> Session:
        try:
            response = await asyncio.to_thread(
                self.client.auth.exchange_code_for_session, {"auth_code": code}
            )
        except Exception as exc:
            raise AuthExchangeError(f"Authentication failed: {exc}") from exc
        return session_from_auth_response(response)

    async def get_current_user(self) -> Optional[Dict[str, Any]]:
        try:
            response = await asyncio.to_thread(self.client.auth.get_user)
        except Exception as exc:
            logger.debug("get_user failed: %s", exc)
            return None
        user = _attr(response, "user")
        if not user:
            return None
        return {"id": _attr(user, "id"), "email": _attr(user, "email")}

    def on_auth_state_change(self, callback: AuthStateCallback) -> Unsubscribe:
        def _forward(event: Any, supa_session: Any) -> None:
            session = None
            if supa_session is not None:
                try:
                    session = session_from_auth_response({"session": supa_session})
                except AuthExchangeError:
                    session = None
            callback(str(getattr(event, "value", event)), session)

        subscription = self.client.auth.on_auth_state_change(_forward)
        return subscription.unsubscribe


class SessionStore:
    """The browser session's auth session, plus the tokens it has already spent."""

    def __init__(self, storage: SessionStorage) -> None:
        self.storage = storage

    def get(self) -> Optional[Session]:
        raw = self.storage.get(SESSION_KEY)
        if raw is None:
            return None
        try:
            return Session.from_json(raw)
        except SerializationError as exc:
            logger.debug("Ignoring stored session: %s", exc)
            return None

    def set(self, session: Session) -> None:
        self.storage.set(SESSION_KEY, session.to_json())

    def clear(self) -> None:
        self.storage.delete(SESSION_KEY)

    @staticmethod
    def _fingerprint(token_hash: str) -> str:
        return hashlib.sha256(token_hash.encode("utf-8")).hexdigest()

    def _consumed(self) -> List[str]:
        raw = self.storage.get(CONSUMED_TOKENS_KEY)
        if not raw:
            return []
        try:
            value = json.loads(raw)
        except ValueError:
            return []
        return [str(item) for item in value] if isinstance(value, list) else []

    def is_consumed(self, token_hash: str) -> bool:
        return self._fingerprint(token_hash) in self._consumed()

    def mark_consumed(self, token_hash: str) -> None:
        consumed = self._consumed()
        fingerprint = self._fingerprint(token_hash)
        if fingerprint not in consumed:
            consumed.append(fingerprint)
            self.storage.set(CONSUMED_TOKENS_KEY, json.dumps(consumed))


__all__ = [
    "AuthStateCallback",
    "IdentityProvider",
    "Session",
    "SessionStore",
    "SupabaseIdentityProvider",
    "Unsubscribe",
    "session_from_auth_response",
]
