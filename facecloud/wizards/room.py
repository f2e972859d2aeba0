"""Room wizard: clinic, room details, review."""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..workflow.drafts import DraftStore
from ..workflow.rules import MinLength, Required
from ..workflow.sequencer import Step
from .base import FormWizard, WizardDefinition
from .common import auto_assign_clinic, skip_clinic_picker


def initial_values() -> Dict[str, Any]:
    return {
        "room": {"clinic_id": None, "name": "", "room_type_id": None, "notes": ""},
    }


ROOM_STEPS = (
    Step("clinic", "Clinic", rules=(Required("room.clinic_id", "Please select a clinic"),)),
    Step(
        "details",
        "Room Details",
        rules=(
            MinLength("room.name", 2, "Room name must be at least 2 characters"),
            Required("room.room_type_id", "Please select a valid room type"),
        ),
    ),
    Step("review", "Review"),
)

ROOM_WIZARD = WizardDefinition(
    name="new-room",
    steps=ROOM_STEPS,
    initial_values=initial_values,
    skip_predicates={"clinic": skip_clinic_picker},
    normalize=auto_assign_clinic("room"),
)


def room_wizard(
    drafts: Optional[DraftStore] = None,
    session_key: Optional[str] = None,
    *,
    clinics: Optional[list] = None,
) -> FormWizard:
    context = {"clinics": clinics} if clinics is not None else {}
    return FormWizard(ROOM_WIZARD, drafts, session_key, context=context)


__all__ = ["ROOM_STEPS", "ROOM_WIZARD", "initial_values", "room_wizard"]
