"""Domain wizards built on the workflow core."""

from .base import FormWizard, WizardDefinition
from .clinic import CLINIC_WIZARD, new_clinic_wizard
from .equipment import EQUIPMENT_FORM, EQUIPMENT_RULES, equipment_form
from .room import ROOM_WIZARD, room_wizard
from .staff import STAFF_ROLES, STAFF_WIZARD, staff_wizard

WIZARDS = {
    definition.name: definition
    for definition in (CLINIC_WIZARD, STAFF_WIZARD, ROOM_WIZARD, EQUIPMENT_FORM)
}

__all__ = [
    "CLINIC_WIZARD",
    "EQUIPMENT_FORM",
    "EQUIPMENT_RULES",
    "FormWizard",
    "ROOM_WIZARD",
    "STAFF_ROLES",
    "STAFF_WIZARD",
    "WIZARDS",
    "WizardDefinition",
    "equipment_form",
    "new_clinic_wizard",
    "room_wizard",
    "staff_wizard",
]
