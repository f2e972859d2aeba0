"""
Magic-link recovery flow.

Landing on a link from an invitation, magic-link or password-recovery email
carries a one-time ``token_hash``. The flow detects it, exchanges it for a
session exactly once, and works out where to send the user next:

    IDLE -> TOKEN_DETECTED -> VERIFYING -> SESSION_ESTABLISHED
                                        -> VERIFICATION_FAILED

Any other edge raises :class:`InvalidTransitionError`. A failed exchange never
touches the session already stored for the browser session, and nothing is
retried automatically.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..config import CONFIG
from ..errors import AuthExchangeError, InvalidTransitionError
from .provider import AuthStateCallback, IdentityProvider, Session, SessionStore, Unsubscribe

logger = logging.getLogger(__name__)

TOKEN_TYPES = ("magiclink", "recovery", "invite")
SCRUBBED_PARAMS = frozenset({"token_hash", "type", "code"})


class RecoveryState(str, Enum):
    IDLE = "idle"
    TOKEN_DETECTED = "token_detected"
    VERIFYING = "verifying"
    SESSION_ESTABLISHED = "session_established"
    VERIFICATION_FAILED = "verification_failed"


TRANSITIONS: Dict[RecoveryState, FrozenSet[RecoveryState]] = {
    RecoveryState.IDLE: frozenset({RecoveryState.TOKEN_DETECTED}),
    RecoveryState.TOKEN_DETECTED: frozenset({RecoveryState.VERIFYING}),
    RecoveryState.VERIFYING: frozenset(
        {RecoveryState.SESSION_ESTABLISHED, RecoveryState.VERIFICATION_FAILED}
    ),
    RecoveryState.SESSION_ESTABLISHED: frozenset(),
    RecoveryState.VERIFICATION_FAILED: frozenset(),
}


@dataclass
class AuthRecoverySession:
    token_hash: str
    token_type: str = "magiclink"
    redirect_to: Optional[str] = None
    onboard: bool = False
    resolved_user_id: Optional[str] = None

    @property
    def exchange_type(self) -> str:
        # Supabase exchanges invitation tokens through the magic-link endpoint.
        return "magiclink" if self.token_type == "invite" else self.token_type


@dataclass
class RecoveryOutcome:
    state: RecoveryState
    session: Optional[Session] = None
    redirect_url: Optional[str] = None
    scrubbed_url: Optional[str] = None
    error: Optional[AuthExchangeError] = None

    @property
    def succeeded(self) -> bool:
        return self.state is RecoveryState.SESSION_ESTABLISHED


def _params(text: str) -> List[Tuple[str, str]]:
    return parse_qsl(text, keep_blank_values=True)


def _lookup(pairs: List[Tuple[str, str]], name: str) -> Optional[str]:
    for key, value in pairs:
        if key == name:
            return value
    return None


def scrub_url(url: str) -> str:
    """Drop one-time auth parameters from both the query string and the fragment."""
    parts = urlsplit(url)
    query = urlencode([(k, v) for k, v in _params(parts.query) if k not in SCRUBBED_PARAMS])
    fragment_pairs = _params(parts.fragment)
    if fragment_pairs:
        fragment = urlencode([(k, v) for k, v in fragment_pairs if k not in SCRUBBED_PARAMS])
    else:
        fragment = parts.fragment
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, fragment))


def sanitize_redirect(target: Optional[str], origin: Optional[str] = None) -> str:
    """
    Reduce a requested redirect to a same-origin path.

    Absolute URLs are accepted only when they point at ``origin``; everything
    else, including protocol-relative ``//host`` paths, collapses to ``/``.
    """
    if not target:
        return "/"
    target = target.strip()
    if origin and (target == origin or target.startswith(origin.rstrip("/") + "/")):
        parts = urlsplit(target)
        target = urlunsplit(("", "", parts.path or "/", parts.query, parts.fragment))
    if not target.startswith("/") or target.startswith("//") or "\\" in target:
        return "/"
    return target


def with_query_param(path: str, name: str, value: str) -> str:
    parts = urlsplit(path)
    pairs = [(k, v) for k, v in _params(parts.query) if k != name]
    pairs.append((name, value))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(pairs), parts.fragment))


class RecoveryFlow:
    """Single-use token exchange for one landing URL."""

    def __init__(
        self,
        provider: IdentityProvider,
        sessions: SessionStore,
        *,
        timeout_seconds: Optional[float] = None,
        origin: Optional[str] = None,
    ) -> None:
        self.provider = provider
        self.sessions = sessions
        self.timeout_seconds = (
            CONFIG.auth_verify_timeout_seconds if timeout_seconds is None else float(timeout_seconds)
        )
        self.origin = CONFIG.app_url if origin is None else origin
        self.state = RecoveryState.IDLE
        self.recovery: Optional[AuthRecoverySession] = None
        self.url: Optional[str] = None
        self._outcome: Optional[RecoveryOutcome] = None
        self._unsubscribers: List[Unsubscribe] = []

    def _transition(self, target: RecoveryState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransitionError(self.state.value, target.value)
        logger.debug("Recovery flow %s -> %s", self.state.value, target.value)
        self.state = target

    @property
    def outcome(self) -> RecoveryOutcome:
        if self._outcome is not None:
            return self._outcome
        return RecoveryOutcome(state=self.state)

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------
    def detect(self, url: str) -> Optional[AuthRecoverySession]:
        """Find a token in the query string, then the fragment. No token leaves the flow idle."""
        if self.state is not RecoveryState.IDLE:
            return self.recovery
        parts = urlsplit(url)
        query = _params(parts.query)
        fragment = _params(parts.fragment)

        token_hash = _lookup(query, "token_hash")
        token_type = _lookup(query, "type")
        if not token_hash:
            token_hash = _lookup(fragment, "token_hash")
            token_type = _lookup(fragment, "type") or token_type
        if not token_hash:
            return None

        self._transition(RecoveryState.TOKEN_DETECTED)
        if token_type not in TOKEN_TYPES:
            token_type = "magiclink"

        redirect_to = _lookup(query, "redirectTo") or _lookup(fragment, "redirectTo")
        onboard = (_lookup(query, "onboard") or _lookup(fragment, "onboard") or "").lower() == "true"

        self.url = url
        self.recovery = AuthRecoverySession(
            token_hash=token_hash,
            token_type=token_type,
            redirect_to=redirect_to,
            onboard=onboard,
        )
        return self.recovery

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------
    def _fail(self, error: AuthExchangeError) -> RecoveryOutcome:
        self._transition(RecoveryState.VERIFICATION_FAILED)
        logger.warning("Auth token verification failed: %s", error)
        self._outcome = RecoveryOutcome(
            state=self.state,
            scrubbed_url=scrub_url(self.url or ""),
            error=error,
        )
        return self._outcome

    def _redirect_for(self, recovery: AuthRecoverySession, session: Session) -> str:
        target = sanitize_redirect(recovery.redirect_to, self.origin)
        if recovery.token_type == "invite" or recovery.onboard or session.first_sign_in:
            target = with_query_param(target, "onboard", "true")
        return target

    async def verify(self) -> RecoveryOutcome:
        if self.state is not RecoveryState.TOKEN_DETECTED or self.recovery is None:
            return self.outcome

        self._transition(RecoveryState.VERIFYING)
        recovery = self.recovery

        if self.sessions.is_consumed(recovery.token_hash):
            return self._fail(AuthExchangeError("This link has already been used"))

        try:
            session = await asyncio.wait_for(
                self.provider.verify_token(recovery.token_hash, recovery.exchange_type),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            return self._fail(AuthExchangeError("Verification timed out"))
        except AuthExchangeError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._fail(AuthExchangeError(f"Authentication failed: {exc}"))

        self.sessions.set(session)
        self.sessions.mark_consumed(recovery.token_hash)
        recovery.resolved_user_id = session.user_id

        self._transition(RecoveryState.SESSION_ESTABLISHED)
        self._outcome = RecoveryOutcome(
            state=self.state,
            session=session,
            redirect_url=self._redirect_for(recovery, session),
            scrubbed_url=scrub_url(self.url or ""),
        )
        logger.info("Session established for user %s via %s link", session.user_id, recovery.token_type)
        return self._outcome

    async def run(self, url: str) -> RecoveryOutcome:
        self.detect(url)
        return await self.verify()

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def subscribe(self, callback: AuthStateCallback) -> Unsubscribe:
        unsubscribe = self.provider.on_auth_state_change(callback)
        self._unsubscribers.append(unsubscribe)
        return unsubscribe

    def cancel(self) -> None:
        """Detach every listener registered through this flow."""
        while self._unsubscribers:
            unsubscribe = self._unsubscribers.pop()
            try:
                unsubscribe()
            except Exception:
                logger.exception("Failed to detach auth state listener")


__all__ = [
    "AuthRecoverySession",
    "RecoveryFlow",
    "RecoveryOutcome",
    "RecoveryState",
    "SCRUBBED_PARAMS",
    "TOKEN_TYPES",
    "TRANSITIONS",
    "sanitize_redirect",
    "scrub_url",
    "with_query_param",
]
