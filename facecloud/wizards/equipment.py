"""Single-page equipment form."""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..workflow.drafts import DraftStore
from ..workflow.rules import IntRange, MinLength, Required
from ..workflow.sequencer import Step
from .base import FormWizard, WizardDefinition
from .common import auto_assign_clinic

EQUIPMENT_RULES = (
    MinLength("equipment.name", 2, "Equipment name must be at least 2 characters"),
    IntRange("equipment.quantity", "Quantity must be at least 1", minimum=1),
    Required("equipment.clinic_id", "Please select a clinic"),
)


def initial_values() -> Dict[str, Any]:
    return {"equipment": {"name": "", "quantity": 1, "clinic_id": None}}


EQUIPMENT_FORM = WizardDefinition(
    name="new-equipment",
    steps=(Step("details", "Equipment Details", rules=EQUIPMENT_RULES),),
    initial_values=initial_values,
    normalize=auto_assign_clinic("equipment"),
)


def equipment_form(
    drafts: Optional[DraftStore] = None,
    session_key: Optional[str] = None,
    *,
    clinics: Optional[list] = None,
) -> FormWizard:
    context = {"clinics": clinics} if clinics is not None else {}
    return FormWizard(EQUIPMENT_FORM, drafts, session_key, context=context)


__all__ = ["EQUIPMENT_FORM", "EQUIPMENT_RULES", "equipment_form", "initial_values"]
