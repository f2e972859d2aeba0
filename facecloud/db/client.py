"""
Database client for the clinic-management schema.

Wraps the Supabase PostgREST, RPC and Storage APIs. Row-level policies live in
the database; this layer only shapes queries and normalises responses. Any
failure talking to Supabase is raised as :class:`NetworkError` so routes can
offer a manual retry instead of crashing.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, List, Optional

from supabase import Client, create_client

from ..config import CONFIG
from ..errors import NetworkError

logger = logging.getLogger(__name__)

STAFF_DETAIL_COLUMNS = """
    id,
    user_id,
    company_id,
    clinic_id,
    location_id,
    role,
    active,
    created_at,
    updated_at,
    user_profiles:user_id(first_name, last_name, email, phone, profile_picture),
    clinics:clinic_id(name)
"""


def _first(rows: Any) -> Optional[Dict[str, Any]]:
    if isinstance(rows, list):
        return rows[0] if rows else None
    if isinstance(rows, dict):
        return rows
    return None


class SupabaseDatabaseClient:
    """Database client for Supabase operations."""

    def __init__(
        self,
        client: Optional[Client] = None,
        *,
        privileged: bool = False,
        access_token: Optional[str] = None,
    ):
        if client is not None:
            self.client = client
            self.using_service_role = privileged
            return

        self.supabase_url = CONFIG.supabase_url or os.getenv("SUPABASE_URL")
        service_key = CONFIG.supabase_service_role_key
        anon_key = CONFIG.supabase_anon_key

        # Service role bypasses RLS; only use it where the caller asked for it.
        if privileged and service_key:
            self.supabase_key = service_key
            self.using_service_role = True
        else:
            self.supabase_key = anon_key or service_key
            self.using_service_role = bool(service_key) and not anon_key

        if not self.supabase_url or not self.supabase_key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_ANON_KEY (or SUPABASE_SERVICE_ROLE_KEY) environment variables are required"
            )

        self.client = create_client(self.supabase_url, self.supabase_key)
        if access_token:
            # PostgREST runs as the caller, so row-level policies see their JWT.
            self.client.postgrest.auth(access_token)
            self.using_service_role = False

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------
    def _run(self, action: str, operation: Callable[[], Any]) -> Any:
        try:
            response = operation()
        except Exception as exc:
            logger.warning("Supabase %s failed: %s", action, exc)
            raise NetworkError(f"Failed to {action}: {exc}") from exc
        return getattr(response, "data", response)

    def rpc(self, name: str, params: Dict[str, Any]) -> Any:
        return self._run(f"call {name}", lambda: self.client.rpc(name, params).execute())

    # ------------------------------------------------------------------
    # Companies and membership
    # ------------------------------------------------------------------
    def get_owned_company_id(self, user_id: str) -> Optional[str]:
        rows = self._run(
            "look up company ownership",
            lambda: self.client.table("company_owners").select("company_id, user_id").eq("user_id", user_id).limit(1).execute(),
        )
        row = _first(rows)
        return row.get("company_id") if row else None

    def get_staff_company_id(self, user_id: str) -> Optional[str]:
        rows = self._run(
            "look up staff company",
            lambda: self.client.table("staff")
            .select("company_id")
            .eq("user_id", user_id)
            .eq("active", True)
            .limit(1)
            .execute(),
        )
        row = _first(rows)
        return row.get("company_id") if row else None

    def resolve_company_id(self, user_id: str) -> Optional[str]:
        """Active staff membership first, then company ownership."""
        return self.get_staff_company_id(user_id) or self.get_owned_company_id(user_id)

    def get_member_role(self, user_id: str, company_id: str) -> Optional[str]:
        rows = self._run(
            "look up member role",
            lambda: self.client.table("staff")
            .select("role")
            .eq("user_id", user_id)
            .eq("company_id", company_id)
            .eq("active", True)
            .limit(1)
            .execute(),
        )
        row = _first(rows)
        return row.get("role") if row else None

    def is_company_owner(self, company_id: str, user_id: str) -> bool:
        rows = self._run(
            "check company owner",
            lambda: self.client.table("company_owners")
            .select("id")
            .eq("company_id", company_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute(),
        )
        return _first(rows) is not None

    def add_company_owner(self, company_id: str, user_id: str, created_by: str) -> Dict[str, Any]:
        rows = self._run(
            "add company owner",
            lambda: self.client.table("company_owners")
            .insert({"company_id": company_id, "user_id": user_id, "created_by": created_by})
            .execute(),
        )
        return _first(rows) or {}

    def setup_new_company(self, user_id: str, email: str, company_name: str) -> Optional[Dict[str, Any]]:
        result = self.rpc(
            "setup_new_company",
            {"p_user_id": user_id, "p_email": email, "p_company_name": company_name},
        )
        return _first(result)

    # ------------------------------------------------------------------
    # Clinics and locations
    # ------------------------------------------------------------------
    def list_company_clinics(self, company_id: str) -> List[Dict[str, Any]]:
        rows = self._run(
            "fetch clinics",
            lambda: self.client.table("clinics")
            .select("id, name")
            .eq("company_id", company_id)
            .eq("active", True)
            .order("name")
            .execute(),
        )
        return list(rows or [])

    def get_clinic(self, clinic_id: str) -> Optional[Dict[str, Any]]:
        rows = self._run(
            "fetch clinic",
            lambda: self.client.table("clinics").select("id, name, company_id").eq("id", clinic_id).limit(1).execute(),
        )
        return _first(rows)

    def get_first_location(self, clinic_id: str) -> Optional[Dict[str, Any]]:
        rows = self._run(
            "fetch clinic location",
            lambda: self.client.table("locations")
            .select("id, name, address, suburb, state, postcode, country, phone, email")
            .eq("clinic_id", clinic_id)
            .order("created_at")
            .limit(1)
            .execute(),
        )
        return _first(rows)

    def insert_clinic(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        rows = self._run("create clinic", lambda: self.client.table("clinics").insert(payload).execute())
        clinic = _first(rows)
        if not clinic:
            raise NetworkError("Clinic insert returned no row")
        return clinic

    def insert_location(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        rows = self._run("create location", lambda: self.client.table("locations").insert(payload).execute())
        location = _first(rows)
        if not location:
            raise NetworkError("Location insert returned no row")
        return location

    # ------------------------------------------------------------------
    # Staff
    # ------------------------------------------------------------------
    def insert_staff(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        rows = self._run("create staff record", lambda: self.client.table("staff").insert(payload).execute())
        staff = _first(rows)
        if not staff:
            raise NetworkError("Staff insert returned no row")
        return staff

    def find_staff(self, user_id: str, company_id: str) -> Optional[Dict[str, Any]]:
        rows = self._run(
            "check existing staff",
            lambda: self.client.table("staff")
            .select("id")
            .eq("user_id", user_id)
            .eq("company_id", company_id)
            .limit(1)
            .execute(),
        )
        return _first(rows)

    def get_staff(self, staff_id: str) -> Optional[Dict[str, Any]]:
        rows = self._run(
            "fetch staff member",
            lambda: self.client.table("staff").select(STAFF_DETAIL_COLUMNS).eq("id", staff_id).limit(1).execute(),
        )
        return _first(rows)

    def update_staff(self, staff_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = self._run(
            "update staff record",
            lambda: self.client.table("staff").update(updates).eq("id", staff_id).execute(),
        )
        return _first(rows)

    def insert_staff_assignment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        rows = self._run(
            "create staff assignment",
            lambda: self.client.table("staff_assignments").insert(payload).execute(),
        )
        return _first(rows) or {}

    def find_user_profile_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        rows = self._run(
            "look up user profile",
            lambda: self.client.table("user_profiles").select("id, email").eq("email", email).limit(1).execute(),
        )
        return _first(rows)

    def update_user_profile(self, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = self._run(
            "update user profile",
            lambda: self.client.table("user_profiles").update(updates).eq("id", user_id).execute(),
        )
        return _first(rows)

    # ------------------------------------------------------------------
    # Rooms and equipment
    # ------------------------------------------------------------------
    def list_room_types(self, clinic_id: str) -> List[Dict[str, Any]]:
        rows = self._run(
            "fetch room types",
            lambda: self.client.table("room_types")
            .select("id, name, description")
            .eq("clinic_id", clinic_id)
            .order("name")
            .execute(),
        )
        return list(rows or [])

    def get_active_flag(self, table: str, record_id: str) -> Optional[bool]:
        rows = self._run(
            f"fetch {table} status",
            lambda: self.client.table(table).select("active").eq("id", record_id).limit(1).execute(),
        )
        row = _first(rows)
        return None if row is None else bool(row.get("active"))

    def set_active_flag(self, table: str, record_id: str, active: bool) -> None:
        self._run(
            f"update {table} status",
            lambda: self.client.table(table).update({"active": active}).eq("id", record_id).execute(),
        )

    def insert_room(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        rows = self._run("create room", lambda: self.client.table("rooms").insert(payload).execute())
        room = _first(rows)
        if not room:
            raise NetworkError("Room insert returned no row")
        return room

    def insert_equipment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        rows = self._run("create equipment", lambda: self.client.table("equipment").insert(payload).execute())
        equipment = _first(rows)
        if not equipment:
            raise NetworkError("Equipment insert returned no row")
        return equipment

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------
    def upload_public_file(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """Upload to a public bucket and return the object's public URL."""
        storage = self.client.storage.from_(bucket)
        self._run(
            f"upload {path}",
            lambda: storage.upload(path, data, {"content-type": content_type, "cache-control": "3600"}),
        )
        url = storage.get_public_url(path)
        return url if isinstance(url, str) else str(url)


DatabaseClient = SupabaseDatabaseClient


_admin_database_client: Optional[DatabaseClient] = None


def get_user_database_client(access_token: str) -> DatabaseClient:
    """A client for one request, acting as the user who owns ``access_token``."""
    if not access_token:
        raise ValueError("access_token is required")
    return DatabaseClient(access_token=access_token)


def get_admin_database_client() -> DatabaseClient:
    """Shared client bound to the service role key, for writes that bypass RLS."""
    global _admin_database_client
    if _admin_database_client is None:
        _admin_database_client = DatabaseClient(privileged=True)
    return _admin_database_client


__all__ = [
    "DatabaseClient",
    "STAFF_DETAIL_COLUMNS",
    "SupabaseDatabaseClient",
    "get_admin_database_client",
    "get_user_database_client",
]
