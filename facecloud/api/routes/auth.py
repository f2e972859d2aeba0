"""Auth landing endpoints: PKCE code callback, magic-link token confirmation and sign-out."""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse

from ..dependencies import SESSION_COOKIE, get_identity_provider, get_optional_session_id, get_session_store
from ..errors import service_errors
from ..schemas import AuthConfirmRequest, AuthConfirmResponse
from ...auth.provider import IdentityProvider, SessionStore
from ...auth.recovery import RecoveryFlow, RecoveryState, sanitize_redirect
from ...config import CONFIG
from ...services.session_storage import get_session_registry

router = APIRouter()


@router.get("/auth/callback")
async def auth_callback(
    code: Optional[str] = Query(None),
    redirect_to: Optional[str] = Query(None),
    provider: IdentityProvider = Depends(get_identity_provider),
    sessions: SessionStore = Depends(get_session_store),
) -> RedirectResponse:
    """Exchange a PKCE code for a session, then send the browser on to the app."""

    if code:
        with service_errors():
            session = await provider.exchange_code_for_session(code)
        sessions.set(session)

    target = "/auth/success"
    if redirect_to:
        target = f"{target}?{urlencode({'redirectTo': sanitize_redirect(redirect_to, CONFIG.app_url)})}"
    return RedirectResponse(url=target, status_code=status.HTTP_303_SEE_OTHER)


@router.post("/auth/confirm", response_model=AuthConfirmResponse)
async def confirm_token(
    payload: AuthConfirmRequest,
    provider: IdentityProvider = Depends(get_identity_provider),
    sessions: SessionStore = Depends(get_session_store),
) -> AuthConfirmResponse:
    """
    Exchange the one-time token carried by an emailed link.

    The body holds the full landing URL. A URL with no token is answered with
    state ``idle``; a failed exchange is a 401 whose detail includes the URL
    with the spent parameters removed.
    """

    flow = RecoveryFlow(provider, sessions)
    try:
        outcome = await flow.run(payload.url)
    finally:
        flow.cancel()

    if outcome.state is RecoveryState.VERIFICATION_FAILED:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": str(outcome.error), "scrubbed_url": outcome.scrubbed_url},
        )

    session = outcome.session
    return AuthConfirmResponse(
        state=outcome.state.value,
        redirect_url=outcome.redirect_url,
        scrubbed_url=outcome.scrubbed_url,
        user_id=session.user_id if session else None,
        access_token=session.access_token if session else None,
        refresh_token=session.refresh_token if session else None,
        expires_at=session.expires_at if session else None,
    )


@router.get("/auth/sign-out")
def sign_out(session_id: Optional[str] = Depends(get_optional_session_id)) -> RedirectResponse:
    """End the browser session, discarding its auth session, drafts and pending draft writes."""

    if session_id:
        get_session_registry().end(session_id)
    response = RedirectResponse(url="/sign-in", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(SESSION_COOKIE)
    return response
