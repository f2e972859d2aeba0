"""Treatment rooms."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

from ..db.client import DatabaseClient
from ..errors import NotFoundError
from ..logger import log
from ..wizards.base import validate_steps
from ..wizards.room import ROOM_STEPS


@dataclass(frozen=True)
class AvailabilityToggled:
    id: str
    active: bool
    message: str


def toggle_availability(db: DatabaseClient, table: str, record_id: str, label: str) -> AvailabilityToggled:
    """Flip the ``active`` flag on a room or equipment row."""
    current = db.get_active_flag(table, record_id)
    if current is None:
        raise NotFoundError(f"{label} not found")
    active = not current
    db.set_active_flag(table, record_id, active)
    state = "available" if active else "unavailable"
    return AvailabilityToggled(id=record_id, active=active, message=f"{label} marked as {state}")


def create_room(db: DatabaseClient, submission: Mapping[str, Any]) -> Dict[str, Any]:
    validate_steps(ROOM_STEPS, submission)
    room = submission["room"]
    created = db.insert_room(
        {
            "name": room["name"].strip(),
            "clinic_id": room["clinic_id"],
            "room_type_id": room["room_type_id"],
            "notes": room.get("notes") or None,
            "active": True,
        }
    )
    log("Room created", room_id=created.get("id"), clinic_id=room["clinic_id"])
    return created


def toggle_room_availability(db: DatabaseClient, room_id: str) -> AvailabilityToggled:
    return toggle_availability(db, "rooms", room_id, "Room")


def list_room_types(db: DatabaseClient, clinic_id: str) -> List[Dict[str, Any]]:
    return db.list_room_types(clinic_id)


__all__ = [
    "AvailabilityToggled",
    "create_room",
    "list_room_types",
    "toggle_availability",
    "toggle_room_availability",
]
