"""Bearer-token checks and GoTrue admin calls for FaceCloud staff accounts.

Request tokens are decoded locally with the project's JWT secret when one is
configured, and otherwise confirmed with Supabase. Invitations and first
passwords go through the admin REST API with the service role key.
"""

import base64
import binascii
import logging
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import jwt
import requests
from fastapi import HTTPException, status
from supabase import Client, create_client

from ..config import CONFIG
from ..errors import NetworkError, NotFoundError


logger = logging.getLogger(__name__)

_BEARER = "Bearer "


def _secret_variants(secret: Optional[str]) -> List[Union[str, bytes]]:
    """The raw secret plus its base64-decoded bytes when it decodes cleanly."""
    raw = (secret or "").strip()
    if not raw:
        return []
    variants: List[Union[str, bytes]] = [raw]
    try:
        decoded = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        decoded = b""
    if decoded:
        variants.append(decoded)
    return variants


class SupabaseAuthManager:
    """Token verification and admin operations against one Supabase project."""

    def __init__(self):
        self.supabase_url = CONFIG.supabase_url
        self.supabase_service_role_key = CONFIG.supabase_service_role_key
        anon_key = CONFIG.supabase_anon_key
        if not (self.supabase_url and anon_key):
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY environment variables are required")
        if not self.supabase_service_role_key:
            logger.warning("SUPABASE_SERVICE_ROLE_KEY not set; invitations and password setup are disabled")
        self.supabase: Client = create_client(self.supabase_url, self.supabase_service_role_key or anon_key)
        self._secrets = _secret_variants(CONFIG.supabase_jwt_secret)

    def _decode_locally(self, token: str) -> Optional[Dict[str, Any]]:
        for secret in self._secrets:
            try:
                return jwt.decode(token, secret, algorithms=["HS256"], audience="authenticated")
            except jwt.InvalidTokenError:
                continue
        return None

    def _user_from_sdk(self, token: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.supabase.auth.get_user(token)
        except Exception as exc:
            logger.warning("Supabase rejected bearer token: %s", exc)
            return None
        user = getattr(response, "user", None) if response else None
        if user is None:
            return None
        return {"sub": user.id, "email": user.email, "user_metadata": user.user_metadata or {}}

    def get_user_from_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Return ``{"id", "email", "metadata"}`` for a valid token, else None."""
        if not token:
            return None
        claims = self._decode_locally(token) or self._user_from_sdk(token)
        if not claims:
            logger.debug("Bearer token could not be verified")
            return None
        return {
            "id": claims.get("sub"),
            "email": claims.get("email"),
            "metadata": claims.get("user_metadata") or {},
        }

    def authenticate_request_token(self, authorization_header: Optional[str]) -> Optional[str]:
        """User id behind an ``Authorization: Bearer`` header, or None."""
        if not authorization_header or not authorization_header.startswith(_BEARER):
            return None
        user = self.get_user_from_token(authorization_header[len(_BEARER):])
        return user.get("id") if user else None

    # ------------------------------------------------------------------
    # Admin API
    # ------------------------------------------------------------------
    def _admin_request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Perform an auth admin request with the service role key."""

        if not self.supabase_service_role_key or not self.supabase_url:
            raise NetworkError("Supabase admin API is not configured (SUPABASE_SERVICE_ROLE_KEY missing)")

        url = f"{self.supabase_url.rstrip('/')}/auth/v1{path}"
        headers = kwargs.pop("headers", {})
        headers.setdefault("Authorization", f"Bearer {self.supabase_service_role_key}")
        headers.setdefault("apikey", self.supabase_service_role_key)
        if "json" in kwargs and kwargs["json"] is not None:
            headers.setdefault("Content-Type", "application/json")

        try:
            response = requests.request(method, url, headers=headers, timeout=10, **kwargs)
        except requests.RequestException as exc:
            logger.exception("Supabase admin request failed", extra={"method": method, "path": path})
            raise NetworkError(f"Supabase admin request {method} {path} failed: {exc}") from exc

        if response.status_code >= 400:
            logger.warning(
                "Supabase admin request %s %s returned %s: %s",
                method,
                path,
                response.status_code,
                response.text,
            )
        return response

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        return body.get("msg") or body.get("message") or body.get("error_description") or str(body)

    def find_user_id_by_email(self, email: str) -> Optional[str]:
        """Look up an auth user by email address."""
        response = self._admin_request("GET", "/admin/users", params={"filter": email, "per_page": 50})
        if response.status_code >= 400:
            raise NetworkError(f"Failed to look up user: {self._error_message(response)}")
        target = email.strip().lower()
        for user in response.json().get("users") or []:
            if (user.get("email") or "").lower() == target:
                return user.get("id")
        return None

    def update_user_password(self, user_id: str, password: str) -> None:
        response = self._admin_request("PUT", f"/admin/users/{user_id}", json={"password": password})
        if response.status_code >= 400:
            raise NetworkError(self._error_message(response))

    def set_password_for_email(self, email: str, password: str) -> str:
        """Set a password for the account owning ``email``. Returns the user id."""
        user_id = self.find_user_id_by_email(email)
        if not user_id:
            raise NotFoundError("User not found")
        self.update_user_password(user_id, password)
        logger.info("Password set for user %s", user_id)
        return user_id

    def invite_user_by_email(
        self,
        email: str,
        *,
        redirect_to: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Send a magic-link invitation. Returns the created auth user."""
        path = "/invite"
        if redirect_to:
            path = f"/invite?redirect_to={quote(redirect_to, safe='')}"
        response = self._admin_request("POST", path, json={"email": email, "data": data or {}})
        if response.status_code >= 400:
            raise NetworkError(f"Failed to send invitation: {self._error_message(response)}")
        return response.json()


AuthManager = SupabaseAuthManager

_auth_manager: Optional[AuthManager] = None


def get_auth_manager() -> AuthManager:
    global _auth_manager
    if _auth_manager is None:
        _auth_manager = AuthManager()
    return _auth_manager


def unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_auth(authorization: Optional[str] = None) -> str:
    """Resolve the caller's user id or raise a 401."""
    if not authorization:
        raise unauthorized("Authorization header required")
    user_id = get_auth_manager().authenticate_request_token(authorization)
    if not user_id:
        raise unauthorized("Invalid or expired token")
    return user_id
