"""Staff membership: invitations, assignments, edits and soft deletion."""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

from ..auth.manager import AuthManager
from ..config import CONFIG
from ..db.client import DatabaseClient
from ..errors import NotFoundError, PermissionDeniedError
from ..logger import log
from ..wizards.base import validate_steps
from ..wizards.staff import MANAGING_ROLES, STAFF_STEPS
from .media import describe_image, upload_image

# The clinic picker is optional server-side: staff can exist without an assignment.
_SUBMISSION_STEPS = tuple(step for step in STAFF_STEPS if step.id in {"basic", "role"})


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _validate(submission: Mapping[str, Any]) -> None:
    basic = submission.get("basic") or {}
    checked = {**submission, "basic": {**basic, "profile_picture": describe_image(basic.get("profile_picture"))}}
    validate_steps(_SUBMISSION_STEPS, checked)


def format_staff(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Flatten a staff row with its joined profile and clinic."""
    profile = row.get("user_profiles") or {}
    clinic = row.get("clinics") or {}
    return {
        "id": row.get("id"),
        "user_id": row.get("user_id"),
        "company_id": row.get("company_id"),
        "clinic_id": row.get("clinic_id"),
        "location_id": row.get("location_id"),
        "role": row.get("role"),
        "active": row.get("active"),
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
        "first_name": profile.get("first_name") or "",
        "last_name": profile.get("last_name") or "",
        "email": profile.get("email") or "",
        "phone": profile.get("phone") or "",
        "profile_picture": profile.get("profile_picture") or "",
        "clinic_name": clinic.get("name") or "No Clinic Assigned",
    }


def _require_staff(db: DatabaseClient, staff_id: str) -> Dict[str, Any]:
    staff = db.get_staff(staff_id)
    if not staff:
        raise NotFoundError("Staff member not found")
    return staff


def _require_manager(db: DatabaseClient, user_id: str, company_id: str, action: str) -> None:
    role = db.get_member_role(user_id, company_id)
    if role not in MANAGING_ROLES:
        raise PermissionDeniedError(f"Unauthorized. Only owners and managers can {action} staff members.")


def create_staff(
    db: DatabaseClient,
    admin_db: DatabaseClient,
    auth: AuthManager,
    user_id: str,
    submission: Mapping[str, Any],
) -> Dict[str, Any]:
    """
    Add someone to the caller's company.

    Unknown email addresses get an invitation whose metadata seeds their
    profile. Existing staff records are reused, so adding a person twice only
    adds the new clinic assignment.
    """
    _validate(submission)
    basic = submission.get("basic") or {}
    role = (submission.get("role") or {}).get("role")
    clinic_id = (submission.get("assignment") or {}).get("clinic_id")

    company_id = db.get_staff_company_id(user_id)
    if not company_id:
        raise PermissionDeniedError("You must be associated with a company to create staff members.")

    email = basic["email"].strip()
    existing_user = db.find_user_profile_by_email(email)
    if existing_user:
        member_id = existing_user["id"]
    else:
        picture_url = upload_image(
            admin_db,
            CONFIG.profile_pictures_bucket,
            f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}",
            basic.get("profile_picture"),
        )
        invited = auth.invite_user_by_email(
            email,
            redirect_to=f"{CONFIG.app_url}/dashboard?onboard=true",
            data={
                "first_name": basic.get("first_name", ""),
                "last_name": basic.get("last_name", ""),
                "phone": basic.get("phone") or "",
                "profile_picture": picture_url or "",
            },
        )
        member_id = (invited.get("user") or invited).get("id")
        if not member_id:
            raise NotFoundError("Invitation did not return a user")

    existing_staff = db.find_staff(member_id, company_id)
    if existing_staff:
        staff_id = existing_staff["id"]
    else:
        staff = admin_db.insert_staff(
            {
                "user_id": member_id,
                "company_id": company_id,
                "role": role,
                "active": True,
                "created_by": user_id,
            }
        )
        staff_id = staff["id"]

    if clinic_id:
        location = db.get_first_location(clinic_id)
        if not location:
            raise NotFoundError("Error finding location for clinic")
        admin_db.insert_staff_assignment(
            {
                "staff_id": staff_id,
                "location_id": location["id"],
                "role": role,
                "primary_location": True,
                "created_by": user_id,
            }
        )

    if role == "owner" and not db.is_company_owner(company_id, member_id):
        db.add_company_owner(company_id, member_id, user_id)

    log("Staff member added", staff_id=staff_id, company_id=company_id, invited=not existing_user)
    return {"staff_id": staff_id, "user_id": member_id, "invited": not existing_user}


def get_staff(db: DatabaseClient, staff_id: str) -> Dict[str, Any]:
    return format_staff(_require_staff(db, staff_id))


def update_staff(
    db: DatabaseClient,
    user_id: str,
    staff_id: str,
    submission: Mapping[str, Any],
) -> Dict[str, Any]:
    _validate(submission)
    staff = _require_staff(db, staff_id)
    _require_manager(db, user_id, staff["company_id"], "update")

    basic = submission.get("basic") or {}
    profile_updates = {
        "first_name": basic.get("first_name"),
        "last_name": basic.get("last_name"),
        "email": basic.get("email"),
        "phone": basic.get("phone"),
        "updated_at": _now(),
    }
    if isinstance(basic.get("profile_picture"), str) and basic["profile_picture"].startswith("http"):
        profile_updates["profile_picture"] = basic["profile_picture"]
    db.update_user_profile(staff["user_id"], profile_updates)

    db.update_staff(
        staff_id,
        {
            "clinic_id": (submission.get("assignment") or {}).get("clinic_id") or None,
            "role": (submission.get("role") or {}).get("role"),
            "active": bool(submission.get("active", True)),
            "updated_at": _now(),
        },
    )
    log("Staff member updated", staff_id=staff_id)
    return get_staff(db, staff_id)


def soft_delete_staff(db: DatabaseClient, user_id: str, staff_id: str) -> None:
    """Mark a staff member inactive. Rows are never removed."""
    staff = _require_staff(db, staff_id)
    _require_manager(db, user_id, staff["company_id"], "delete")
    db.update_staff(staff_id, {"active": False, "updated_at": _now()})
    log("Staff member deactivated", staff_id=staff_id)


def resend_invitation(
    db: DatabaseClient,
    auth: AuthManager,
    user_id: str,
    staff_id: str,
) -> None:
    staff = format_staff(_require_staff(db, staff_id))
    if not staff["email"]:
        raise NotFoundError("Staff member has no email address")
    auth.invite_user_by_email(
        staff["email"],
        redirect_to=f"{CONFIG.app_url}/dashboard?onboard=true",
        data={"invited_by": user_id, "role": staff["role"], "staff_id": staff_id},
    )
    db.update_staff(staff_id, {"updated_at": _now(), "updated_by": user_id})
    log("Staff invitation resent", staff_id=staff_id)


__all__ = [
    "create_staff",
    "format_staff",
    "get_staff",
    "resend_invitation",
    "soft_delete_staff",
    "update_staff",
]
