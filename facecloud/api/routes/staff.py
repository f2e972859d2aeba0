"""Staff endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from ..dependencies import get_admin_database, get_database_with_user, get_session_drafts
from ..errors import service_errors
from ..schemas import StaffCreatedResponse, StaffMember, StaffSubmission, SuccessResponse
from ...auth.manager import get_auth_manager
from ...db import DatabaseClient
from ...services import staff as staff_service
from ...wizards import STAFF_WIZARD
from ...workflow.drafts import DraftStore

router = APIRouter()


@router.post("/staff", response_model=StaffCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_staff(
    payload: StaffSubmission,
    context=Depends(get_database_with_user),
    admin_db: DatabaseClient = Depends(get_admin_database),
    drafts: Optional[DraftStore] = Depends(get_session_drafts),
) -> StaffCreatedResponse:
    """Add a staff member, inviting them by email when they have no account yet."""

    user_id, db = context
    with service_errors():
        created = staff_service.create_staff(db, admin_db, get_auth_manager(), user_id, payload.model_dump())
    if drafts is not None:
        drafts.clear(STAFF_WIZARD.name)
    return StaffCreatedResponse(**created)


@router.get("/staff/{staff_id}", response_model=StaffMember)
def get_staff(staff_id: str, context=Depends(get_database_with_user)) -> StaffMember:
    _, db = context
    with service_errors():
        staff = staff_service.get_staff(db, staff_id)
    return StaffMember(**staff)


@router.patch("/staff/{staff_id}", response_model=StaffMember)
def update_staff(staff_id: str, payload: StaffSubmission, context=Depends(get_database_with_user)) -> StaffMember:
    """Owners and managers only."""

    user_id, db = context
    with service_errors():
        staff = staff_service.update_staff(db, user_id, staff_id, payload.model_dump())
    return StaffMember(**staff)


@router.delete("/staff/{staff_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_staff(staff_id: str, context=Depends(get_database_with_user)) -> Response:
    """Deactivate a staff member. Owners and managers only."""

    user_id, db = context
    with service_errors():
        staff_service.soft_delete_staff(db, user_id, staff_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/staff/{staff_id}/resend-invitation", response_model=SuccessResponse)
def resend_invitation(staff_id: str, context=Depends(get_database_with_user)) -> SuccessResponse:
    user_id, db = context
    with service_errors():
        staff_service.resend_invitation(db, get_auth_manager(), user_id, staff_id)
    return SuccessResponse()
