"""Field formats and clinic-picker behaviour shared by the domain wizards."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

# Landline or mobile, with or without the +61 prefix and single spaces/dashes.
AU_PHONE_PATTERN = r"(?:\+?61|0)[ -]?[2-478](?:[ -]?[0-9]){8}"
POSTCODE_PATTERN = r"\d{4}"
AU_STATES = ("NSW", "VIC", "QLD", "SA", "WA", "TAS", "ACT", "NT")

MAX_IMAGE_BYTES = 2 * 1024 * 1024
IMAGE_CONTENT_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
IMAGE_SIZE_MESSAGE = "File size must be less than 2MB"
IMAGE_TYPE_MESSAGE = "Only .jpg, .jpeg, .png and .webp files are accepted"


def available_clinics(snapshot: Mapping[str, Any]) -> List[Dict[str, Any]]:
    context = snapshot.get("context") or {}
    return list(context.get("clinics") or [])


def single_clinic(snapshot: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """The only clinic on offer when a new record is being created, else None."""
    context = snapshot.get("context") or {}
    if context.get("editing"):
        return None
    clinics = available_clinics(snapshot)
    return clinics[0] if len(clinics) == 1 else None


def skip_clinic_picker(snapshot: Mapping[str, Any]) -> bool:
    return single_clinic(snapshot) is not None


def auto_assign_clinic(section: str, key: str = "clinic_id"):
    """Normalizer that fills ``values[section][key]`` when only one clinic is available."""

    def _normalize(values: Dict[str, Any], context: Mapping[str, Any]) -> None:
        clinic = single_clinic({"context": context})
        if clinic is None:
            return
        target = values.setdefault(section, {})
        if not target.get(key):
            target[key] = clinic.get("id")

    return _normalize


__all__ = [
    "AU_PHONE_PATTERN",
    "AU_STATES",
    "IMAGE_CONTENT_TYPES",
    "IMAGE_SIZE_MESSAGE",
    "IMAGE_TYPE_MESSAGE",
    "MAX_IMAGE_BYTES",
    "POSTCODE_PATTERN",
    "auto_assign_clinic",
    "available_clinics",
    "single_clinic",
    "skip_clinic_picker",
]
