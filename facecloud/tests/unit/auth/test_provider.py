"""Tests for the Supabase identity provider adapter and the auth session store."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from facecloud.auth.provider import (
    SESSION_KEY,
    Session,
    SessionStore,
    SupabaseIdentityProvider,
    session_from_auth_response,
)
from facecloud.errors import AuthExchangeError
from facecloud.services.session_storage import SessionStorage


def _auth_response(*, last_sign_in=None, confirmed=None):
    user = SimpleNamespace(
        id="user-1",
        email="jane@example.com",
        last_sign_in_at=last_sign_in,
        confirmed_at=confirmed,
        user_metadata={"first_name": "Jane"},
    )
    session = SimpleNamespace(access_token="access", refresh_token="refresh", expires_at=1700003600, user=user)
    return SimpleNamespace(session=session, user=user)


class StubAuthClient:
    def __init__(self, *, error: Exception | None = None):
        self.error = error
        self.verified = []
        self.callbacks = []
        self.unsubscribed = False

    def verify_otp(self, params):
        if self.error is not None:
            raise self.error
        self.verified.append(params)
        return _auth_response()

    def exchange_code_for_session(self, params):
        assert params == {"auth_code": "pkce-code"}
        return _auth_response()

    def get_user(self):
        return SimpleNamespace(user=SimpleNamespace(id="user-1", email="jane@example.com"))

    def on_auth_state_change(self, callback):
        self.callbacks.append(callback)

        def _unsubscribe():
            self.unsubscribed = True

        return SimpleNamespace(unsubscribe=_unsubscribe)


def _provider(auth: StubAuthClient) -> SupabaseIdentityProvider:
    return SupabaseIdentityProvider(client=SimpleNamespace(auth=auth))


def test_session_from_auth_response_detects_first_sign_in() -> None:
    confirmed = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    fresh = session_from_auth_response(_auth_response(last_sign_in=confirmed, confirmed=confirmed))
    returning = session_from_auth_response(
        _auth_response(last_sign_in=datetime(2024, 3, 5, tzinfo=timezone.utc), confirmed=confirmed)
    )

    assert fresh.first_sign_in is True
    assert returning.first_sign_in is False
    assert returning.user_metadata == {"first_name": "Jane"}


def test_session_from_auth_response_requires_a_session() -> None:
    with pytest.raises(AuthExchangeError):
        session_from_auth_response(SimpleNamespace(session=None, user=None))


def test_verify_token_calls_verify_otp() -> None:
    auth = StubAuthClient()

    session = asyncio.run(_provider(auth).verify_token("hash-1", "magiclink"))

    assert auth.verified == [{"token_hash": "hash-1", "type": "magiclink"}]
    assert session.user_id == "user-1"
    assert session.access_token == "access"


def test_verify_token_wraps_sdk_errors() -> None:
    auth = StubAuthClient(error=RuntimeError("Token has expired or is invalid"))

    with pytest.raises(AuthExchangeError) as exc:
        asyncio.run(_provider(auth).verify_token("hash-1", "recovery"))

    assert "expired" in str(exc.value)


def test_exchange_code_and_current_user() -> None:
    provider = _provider(StubAuthClient())

    session = asyncio.run(provider.exchange_code_for_session("pkce-code"))
    user = asyncio.run(provider.get_current_user())

    assert session.email == "jane@example.com"
    assert user == {"id": "user-1", "email": "jane@example.com"}


def test_auth_state_listener_is_forwarded_and_detachable() -> None:
    auth = StubAuthClient()
    events = []

    unsubscribe = _provider(auth).on_auth_state_change(lambda event, session: events.append((event, session)))
    auth.callbacks[0](SimpleNamespace(value="SIGNED_OUT"), None)
    unsubscribe()

    assert events == [("SIGNED_OUT", None)]
    assert auth.unsubscribed is True


def test_session_store_round_trip_and_clear(session_storage: SessionStorage) -> None:
    store = SessionStore(session_storage)
    session = Session(access_token="a", refresh_token="r", user_id="user-1")

    store.set(session)
    assert store.get() == session

    store.clear()
    assert store.get() is None


def test_session_store_ignores_unreadable_session(session_storage: SessionStorage) -> None:
    session_storage.set(SESSION_KEY, "{broken")

    assert SessionStore(session_storage).get() is None


def test_consumed_tokens_are_fingerprinted(session_storage: SessionStorage) -> None:
    store = SessionStore(session_storage)

    store.mark_consumed("secret-token")
    store.mark_consumed("secret-token")

    assert store.is_consumed("secret-token") is True
    assert store.is_consumed("other-token") is False
    assert all("secret-token" not in session_storage.get(key) for key in session_storage.keys())
