"""Clinic equipment inventory."""

from __future__ import annotations

from typing import Any, Dict, Mapping

from ..db.client import DatabaseClient
from ..logger import log
from ..workflow.rules import validate
from ..wizards.equipment import EQUIPMENT_RULES
from .rooms import AvailabilityToggled, toggle_availability


def create_equipment(db: DatabaseClient, submission: Mapping[str, Any]) -> Dict[str, Any]:
    validate(EQUIPMENT_RULES, submission)
    equipment = submission["equipment"]
    created = db.insert_equipment(
        {
            "name": equipment["name"].strip(),
            "quantity": int(equipment["quantity"]),
            "clinic_id": equipment["clinic_id"],
            "active": True,
        }
    )
    log("Equipment created", equipment_id=created.get("id"), clinic_id=equipment["clinic_id"])
    return created


def toggle_equipment_availability(db: DatabaseClient, equipment_id: str) -> AvailabilityToggled:
    return toggle_availability(db, "equipment", equipment_id, "Equipment")


__all__ = ["create_equipment", "toggle_equipment_availability"]
