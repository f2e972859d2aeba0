"""In-memory stand-ins for the Supabase database client and auth manager."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest


class StubDB:
    def __init__(
        self,
        *,
        company_id: Optional[str] = "company-1",
        role: Optional[str] = "owner",
        profiles: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> None:
        self.company_id = company_id
        self.role = role
        self.profiles = dict(profiles or {})
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.uploads: List[Dict[str, Any]] = []
        self.owners: List[Dict[str, Any]] = []
        self.flags: Dict[str, Dict[str, bool]] = {}
        self.staff_rows: Dict[str, Dict[str, Any]] = {}
        self.staff_updates: List[Dict[str, Any]] = []
        self.profile_updates: List[Dict[str, Any]] = []
        self.company_setups: List[Dict[str, Any]] = []
        self._counter = 0

    def _insert(self, table: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._counter += 1
        row = {"id": f"{table}-{self._counter}", **payload}
        self.tables.setdefault(table, []).append(row)
        return row

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.get(table, [])

    # companies
    def get_owned_company_id(self, user_id: str) -> Optional[str]:
        return self.company_id

    def get_staff_company_id(self, user_id: str) -> Optional[str]:
        return self.company_id

    def resolve_company_id(self, user_id: str) -> Optional[str]:
        return self.company_id

    def get_member_role(self, user_id: str, company_id: str) -> Optional[str]:
        return self.role

    def is_company_owner(self, company_id: str, user_id: str) -> bool:
        return any(owner["user_id"] == user_id for owner in self.owners)

    def add_company_owner(self, company_id: str, user_id: str, created_by: str) -> Dict[str, Any]:
        owner = {"company_id": company_id, "user_id": user_id, "created_by": created_by}
        self.owners.append(owner)
        return owner

    def setup_new_company(self, user_id: str, email: str, company_name: str) -> Optional[Dict[str, Any]]:
        self.company_setups.append({"user_id": user_id, "email": email, "company_name": company_name})
        return {"company_id": "company-new", "company_name": company_name}

    # clinics
    def list_company_clinics(self, company_id: str) -> List[Dict[str, Any]]:
        return list(self.rows("clinics"))

    def get_clinic(self, clinic_id: str) -> Optional[Dict[str, Any]]:
        return next((row for row in self.rows("clinics") if row["id"] == clinic_id), None)

    def get_first_location(self, clinic_id: str) -> Optional[Dict[str, Any]]:
        return next((row for row in self.rows("locations") if row["clinic_id"] == clinic_id), None)

    def insert_clinic(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("clinics", payload)

    def insert_location(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("locations", payload)

    # staff
    def insert_staff(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("staff", payload)

    def find_staff(self, user_id: str, company_id: str) -> Optional[Dict[str, Any]]:
        return next(
            (row for row in self.rows("staff") if row["user_id"] == user_id and row["company_id"] == company_id),
            None,
        )

    def get_staff(self, staff_id: str) -> Optional[Dict[str, Any]]:
        return self.staff_rows.get(staff_id)

    def update_staff(self, staff_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        self.staff_updates.append({"id": staff_id, **updates})
        row = self.staff_rows.get(staff_id)
        if row is not None:
            row.update(updates)
        return row

    def insert_staff_assignment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("staff_assignments", payload)

    def find_user_profile_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self.profiles.get(email)

    def update_user_profile(self, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        self.profile_updates.append({"id": user_id, **updates})
        return {"id": user_id, **updates}

    # rooms and equipment
    def list_room_types(self, clinic_id: str) -> List[Dict[str, Any]]:
        return [{"id": "type-1", "name": "Treatment", "description": None}]

    def get_active_flag(self, table: str, record_id: str) -> Optional[bool]:
        return self.flags.get(table, {}).get(record_id)

    def set_active_flag(self, table: str, record_id: str, active: bool) -> None:
        self.flags.setdefault(table, {})[record_id] = active

    def insert_room(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("rooms", payload)

    def insert_equipment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("equipment", payload)

    # storage
    def upload_public_file(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        self.uploads.append({"bucket": bucket, "path": path, "size": len(data), "content_type": content_type})
        return f"https://cdn.facecloud.test/{bucket}/{path}"


class StubAuth:
    def __init__(self, *, user_id: str = "invited-1") -> None:
        self.user_id = user_id
        self.invites: List[Dict[str, Any]] = []
        self.passwords: List[Dict[str, str]] = []

    def invite_user_by_email(self, email: str, *, redirect_to=None, data=None) -> Dict[str, Any]:
        self.invites.append({"email": email, "redirect_to": redirect_to, "data": data or {}})
        return {"id": self.user_id, "email": email}

    def set_password_for_email(self, email: str, password: str) -> str:
        self.passwords.append({"email": email, "password": password})
        return self.user_id


@pytest.fixture
def db() -> StubDB:
    return StubDB()


@pytest.fixture
def auth() -> StubAuth:
    return StubAuth()
