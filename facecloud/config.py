"""Environment-driven runtime settings for FaceCloud.

Every value is read from the process environment (optionally seeded from a
``.env`` file via :func:`load_envs`) and exposed both as attributes on
``CONFIG`` and as upper-case module globals.
"""

from __future__ import annotations

import os
from types import SimpleNamespace
from typing import Callable, Dict, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")


def _lookup(name: str, alias: Optional[str] = None) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None and alias:
        raw = os.getenv(alias)
    return None if raw is None else raw.strip()


def _env_str(name: str, default: Optional[str] = None, *, alias: Optional[str] = None) -> Optional[str]:
    return _lookup(name, alias) or default


def _env_number(name: str, default: T, cast: Callable[[str], T]) -> T:
    raw = _lookup(name)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        return default


def _env_tuple(name: str, default: Sequence[str] = ()) -> Tuple[str, ...]:
    raw = _lookup(name) or ""
    items = tuple(part.strip() for part in raw.split(",") if part.strip())
    return items or tuple(default)


class Settings(SimpleNamespace):
    """Attribute bag for the values computed by :func:`reload_config`."""


CONFIG = Settings()


def _compute_values() -> Dict[str, object]:
    environment = (_env_str("ENV", "prod") or "prod").lower()
    if environment not in {"dev", "test", "prod"}:
        environment = "prod"

    supabase_url = _env_str("SUPABASE_URL")
    supabase_anon_key = _env_str("SUPABASE_ANON_KEY")
    supabase_service_role_key = _env_str("SUPABASE_SERVICE_ROLE_KEY")

    return {
        "environment": environment,
        "is_development": environment == "dev",
        # Supabase project
        "supabase_url": supabase_url,
        "supabase_anon_key": supabase_anon_key,
        "supabase_service_role_key": supabase_service_role_key,
        "supabase_jwt_secret": _env_str("SUPABASE_JWT_SECRET"),
        "supabase_configured": bool(supabase_url) and bool(supabase_anon_key or supabase_service_role_key),
        "clinic_assets_bucket": _env_str("CLINIC_ASSETS_BUCKET", "clinic-assets"),
        "profile_pictures_bucket": _env_str("PROFILE_PICTURES_BUCKET", "profile-pictures"),
        # Public surface
        "app_url": (_env_str("APP_URL", "http://localhost:3000", alias="SITE_URL") or "").rstrip("/"),
        "cors_origins": _env_tuple("API_CORS_ORIGINS"),
        # Workflow tuning
        "draft_debounce_seconds": max(_env_number("DRAFT_DEBOUNCE_SECONDS", 2.0, float), 0.0),
        "metrics_cache_ttl_seconds": max(_env_number("METRICS_CACHE_TTL_SECONDS", 300.0, float), 0.0),
        "auth_verify_timeout_seconds": max(_env_number("AUTH_VERIFY_TIMEOUT_SECONDS", 15.0, float), 0.1),
        "password_min_length": max(_env_number("PASSWORD_MIN_LENGTH", 8, int), 1),
        # Browser sessions held in memory
        "session_idle_seconds": max(_env_number("SESSION_IDLE_SECONDS", 3600.0, float), 1.0),
        "session_max_active": max(_env_number("SESSION_MAX_ACTIVE", 500, int), 1),
    }


def reload_config() -> None:
    values = _compute_values()
    globals().update({key.upper(): value for key, value in values.items()})
    CONFIG.__dict__.update(values)


def load_envs(global_dir: str) -> None:
    """Load environment variables from the project's .env file."""
    from dotenv import load_dotenv

    load_dotenv(os.path.join(global_dir, ".env"))
    reload_config()


reload_config()
