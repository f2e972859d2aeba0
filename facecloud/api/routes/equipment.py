"""Equipment endpoints."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status

from ..dependencies import get_database_with_user, get_session_drafts
from ..errors import service_errors
from ..schemas import AvailabilityResponse, EquipmentSubmission
from ...services import equipment as equipment_service
from ...wizards import EQUIPMENT_FORM
from ...workflow.drafts import DraftStore

router = APIRouter()


@router.post("/equipment", status_code=status.HTTP_201_CREATED)
def create_equipment(
    payload: EquipmentSubmission,
    context=Depends(get_database_with_user),
    drafts: Optional[DraftStore] = Depends(get_session_drafts),
) -> Dict[str, Any]:
    _, db = context
    with service_errors():
        created = equipment_service.create_equipment(db, payload.model_dump())
    if drafts is not None:
        drafts.clear(EQUIPMENT_FORM.name)
    return created


@router.post("/equipment/{equipment_id}/toggle", response_model=AvailabilityResponse)
def toggle_equipment(equipment_id: str, context=Depends(get_database_with_user)) -> AvailabilityResponse:
    _, db = context
    with service_errors():
        result = equipment_service.toggle_equipment_availability(db, equipment_id)
    return AvailabilityResponse(id=result.id, active=result.active, message=result.message)
