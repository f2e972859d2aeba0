"""New clinic wizard: basic details, location, contact, opening hours, review."""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..workflow.drafts import DraftStore
from ..workflow.rules import (
    AnyTrue,
    EmailAddress,
    FileConstraint,
    Matches,
    OneOf,
    Required,
    RequiredWhen,
)
from ..workflow.sequencer import Step
from .base import FormWizard, WizardDefinition
from .common import (
    AU_PHONE_PATTERN,
    AU_STATES,
    IMAGE_CONTENT_TYPES,
    IMAGE_SIZE_MESSAGE,
    IMAGE_TYPE_MESSAGE,
    MAX_IMAGE_BYTES,
    POSTCODE_PATTERN,
)

DAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
WEEKDAYS = DAYS[:5]


def default_hours() -> Dict[str, Dict[str, Any]]:
    hours: Dict[str, Dict[str, Any]] = {}
    for day in DAYS:
        if day in WEEKDAYS:
            hours[day] = {"is_open": True, "open_time": "09:00", "close_time": "17:00"}
        else:
            hours[day] = {"is_open": False}
    return hours


def initial_values() -> Dict[str, Any]:
    return {
        "clinic": {"name": "", "logo": None},
        "location": {"address": "", "suburb": "", "state": None, "postcode": "", "country": "Australia"},
        "contact": {"phone": "", "email": ""},
        "operating_hours": default_hours(),
    }


CLINIC_STEPS = (
    Step(
        "basic",
        "Basic Info",
        rules=(
            Required("clinic.name", "Clinic name is required"),
            FileConstraint(
                "clinic.logo",
                max_bytes=MAX_IMAGE_BYTES,
                content_types=IMAGE_CONTENT_TYPES,
                size_message=IMAGE_SIZE_MESSAGE,
                type_message=IMAGE_TYPE_MESSAGE,
            ),
        ),
    ),
    Step(
        "location",
        "Location",
        rules=(
            Required("location.address", "Address is required"),
            Required("location.suburb", "Suburb is required"),
            OneOf("location.state", AU_STATES, "Please select a state"),
            Matches(
                "location.postcode",
                POSTCODE_PATTERN,
                "Please enter a valid 4-digit postcode",
                required=True,
            ),
        ),
    ),
    Step(
        "contact",
        "Contact",
        rules=(
            Required("contact.phone", "Phone number is required"),
            Matches("contact.phone", AU_PHONE_PATTERN, "Please enter a valid phone number"),
            Required("contact.email", "Email address is required"),
            EmailAddress("contact.email", "Please enter a valid email address"),
        ),
    ),
    Step(
        "hours",
        "Operating Hours",
        rules=(
            AnyTrue("operating_hours", "is_open", "At least one day must be open"),
            RequiredWhen(
                "operating_hours",
                "is_open",
                ("open_time", "close_time"),
                "All open days must have opening and closing times",
            ),
        ),
    ),
    Step("review", "Review"),
)

CLINIC_WIZARD = WizardDefinition(
    name="new-clinic",
    steps=CLINIC_STEPS,
    initial_values=initial_values,
)


def new_clinic_wizard(drafts: Optional[DraftStore] = None, session_key: Optional[str] = None) -> FormWizard:
    return FormWizard(CLINIC_WIZARD, drafts, session_key)


__all__ = ["CLINIC_STEPS", "CLINIC_WIZARD", "DAYS", "default_hours", "initial_values", "new_clinic_wizard"]
