"""Staff wizard: personal details, clinic assignment, role, review."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ..workflow.drafts import DraftStore
from ..workflow.rules import EmailAddress, FileConstraint, Matches, OneOf, Required
from ..workflow.sequencer import Step
from .base import FormWizard, WizardDefinition
from .common import (
    AU_PHONE_PATTERN,
    IMAGE_CONTENT_TYPES,
    IMAGE_SIZE_MESSAGE,
    IMAGE_TYPE_MESSAGE,
    MAX_IMAGE_BYTES,
    auto_assign_clinic,
    skip_clinic_picker,
)

STAFF_ROLES = ("owner", "manager", "doctor", "nurse", "therapist", "admin")
MANAGING_ROLES = ("owner", "manager")


def initial_values() -> Dict[str, Any]:
    return {
        "basic": {"first_name": "", "last_name": "", "email": "", "phone": "", "profile_picture": None},
        "assignment": {"clinic_id": None},
        "role": {"role": None},
    }


STAFF_STEPS = (
    Step(
        "basic",
        "Basic Info",
        rules=(
            Required("basic.first_name", "First name is required"),
            Required("basic.last_name", "Last name is required"),
            Required("basic.email", "Email is required"),
            EmailAddress("basic.email", "Please enter a valid email address"),
            Matches("basic.phone", AU_PHONE_PATTERN, "Please enter a valid Australian phone number"),
            FileConstraint(
                "basic.profile_picture",
                max_bytes=MAX_IMAGE_BYTES,
                content_types=IMAGE_CONTENT_TYPES,
                size_message=IMAGE_SIZE_MESSAGE,
                type_message=IMAGE_TYPE_MESSAGE,
            ),
        ),
    ),
    Step(
        "clinic",
        "Clinic Assignment",
        rules=(Required("assignment.clinic_id", "Please select a clinic"),),
    ),
    Step(
        "role",
        "Role & Permissions",
        rules=(OneOf("role.role", STAFF_ROLES, "Role is required"),),
    ),
    Step("review", "Review"),
)

STAFF_WIZARD = WizardDefinition(
    name="new-staff",
    steps=STAFF_STEPS,
    initial_values=initial_values,
    skip_predicates={"clinic": skip_clinic_picker},
    normalize=auto_assign_clinic("assignment"),
)


def staff_wizard(
    drafts: Optional[DraftStore] = None,
    session_key: Optional[str] = None,
    *,
    clinics: Optional[list] = None,
    existing: Optional[Mapping[str, Any]] = None,
) -> FormWizard:
    """Start a staff wizard. ``existing`` pre-fills the form for editing."""
    context: Dict[str, Any] = {}
    if clinics is not None:
        context["clinics"] = clinics
    wizard = FormWizard(
        STAFF_WIZARD,
        drafts,
        session_key,
        context=context,
        editing=existing is not None,
        restore=existing is None,
    )
    if existing is not None:
        for section, values in existing.items():
            wizard.update(section, values)
    return wizard


__all__ = ["MANAGING_ROLES", "STAFF_ROLES", "STAFF_STEPS", "STAFF_WIZARD", "initial_values", "staff_wizard"]
