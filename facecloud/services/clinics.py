"""Clinic creation and listing."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

from ..config import CONFIG
from ..db.client import DatabaseClient
from ..errors import NotFoundError
from ..logger import log
from ..wizards.base import validate_steps
from ..wizards.clinic import CLINIC_STEPS
from .media import describe_image, upload_image

DAY_CODES = {
    "monday": "mon",
    "tuesday": "tue",
    "wednesday": "wed",
    "thursday": "thu",
    "friday": "fri",
    "saturday": "sat",
    "sunday": "sun",
}


@dataclass(frozen=True)
class ClinicCreated:
    clinic_id: str
    location_id: str
    redirect_path: str


def format_hours_for_db(hours: Mapping[str, Any]) -> Dict[str, List[str]]:
    """``{"monday": {"is_open": True, ...}}`` to ``{"mon": ["09:00-17:00"]}``. Closed days are omitted."""
    formatted: Dict[str, List[str]] = {}
    for day, schedule in (hours or {}).items():
        code = DAY_CODES.get(day)
        if not code or not isinstance(schedule, Mapping):
            continue
        if schedule.get("is_open") and schedule.get("open_time") and schedule.get("close_time"):
            formatted[code] = [f"{schedule['open_time']}-{schedule['close_time']}"]
    return formatted


def _require_company(db: DatabaseClient, user_id: str) -> str:
    company_id = db.get_owned_company_id(user_id)
    if not company_id:
        raise NotFoundError(
            "No company found. Please ensure your account is properly set up with a company."
        )
    return company_id


def create_clinic(db: DatabaseClient, user_id: str, submission: Mapping[str, Any]) -> ClinicCreated:
    """Create a clinic, its first location, and make the creator its owner."""
    clinic_data = submission.get("clinic") or {}
    checked = {**submission, "clinic": {**clinic_data, "logo": describe_image(clinic_data.get("logo"))}}
    validate_steps(CLINIC_STEPS, checked)

    company_id = _require_company(db, user_id)
    location_data = submission.get("location") or {}
    contact = submission.get("contact") or {}

    logo_url = upload_image(
        db,
        CONFIG.clinic_assets_bucket,
        f"clinic-logos/{company_id}/{int(time.time() * 1000)}",
        clinic_data.get("logo"),
    )

    clinic = db.insert_clinic(
        {
            "name": clinic_data.get("name", "").strip(),
            "company_id": company_id,
            "logo_url": logo_url,
            "created_by": user_id,
        }
    )
    location = db.insert_location(
        {
            "clinic_id": clinic["id"],
            "name": location_data.get("suburb") or "Main Location",
            "address": location_data.get("address"),
            "suburb": location_data.get("suburb"),
            "state": location_data.get("state"),
            "postcode": location_data.get("postcode"),
            "country": location_data.get("country") or "Australia",
            "phone": contact.get("phone"),
            "email": contact.get("email"),
            "opening_hours": format_hours_for_db(submission.get("operating_hours") or {}),
            "created_by": user_id,
        }
    )
    db.insert_staff(
        {
            "user_id": user_id,
            "company_id": company_id,
            "clinic_id": clinic["id"],
            "location_id": location["id"],
            "role": "owner",
            "created_by": user_id,
        }
    )

    log("Clinic created", clinic_id=clinic["id"], company_id=company_id)
    return ClinicCreated(
        clinic_id=clinic["id"],
        location_id=location["id"],
        redirect_path=f"/clinics/{clinic['id']}",
    )


def list_company_clinics(db: DatabaseClient, user_id: str) -> List[Dict[str, Any]]:
    """Clinics in the user's company, each with the name of its first location."""
    company_id = db.resolve_company_id(user_id)
    if not company_id:
        return []
    clinics = []
    for clinic in db.list_company_clinics(company_id):
        location = db.get_first_location(clinic["id"])
        clinics.append(
            {
                "id": clinic["id"],
                "name": clinic.get("name"),
                "location_name": location.get("name") if location else None,
            }
        )
    return clinics


__all__ = ["ClinicCreated", "DAY_CODES", "create_clinic", "format_hours_for_db", "list_company_clinics"]
