"""Room endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status

from ..dependencies import get_database_with_user, get_session_drafts
from ..errors import service_errors
from ..schemas import AvailabilityResponse, RoomSubmission, RoomType
from ...services import rooms as room_service
from ...wizards import ROOM_WIZARD
from ...workflow.drafts import DraftStore

router = APIRouter()


@router.post("/rooms", status_code=status.HTTP_201_CREATED)
def create_room(
    payload: RoomSubmission,
    context=Depends(get_database_with_user),
    drafts: Optional[DraftStore] = Depends(get_session_drafts),
) -> Dict[str, Any]:
    _, db = context
    with service_errors():
        created = room_service.create_room(db, payload.model_dump())
    if drafts is not None:
        drafts.clear(ROOM_WIZARD.name)
    return created


@router.post("/rooms/{room_id}/toggle", response_model=AvailabilityResponse)
def toggle_room(room_id: str, context=Depends(get_database_with_user)) -> AvailabilityResponse:
    _, db = context
    with service_errors():
        result = room_service.toggle_room_availability(db, room_id)
    return AvailabilityResponse(id=result.id, active=result.active, message=result.message)


@router.get("/clinics/{clinic_id}/room-types", response_model=List[RoomType])
def list_room_types(clinic_id: str, context=Depends(get_database_with_user)) -> List[RoomType]:
    _, db = context
    with service_errors():
        rows = room_service.list_room_types(db, clinic_id)
    return [RoomType(**row) for row in rows]

