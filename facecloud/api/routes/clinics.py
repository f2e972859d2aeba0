"""Clinic endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_current_user_id, get_database_with_user, get_metrics, get_session_drafts
from ..errors import service_errors
from ..schemas import ClinicCreatedResponse, ClinicListResponse, ClinicMetricsResponse, ClinicSubmission
from ...metrics.service import MetricsService
from ...services import clinics as clinic_service
from ...wizards import CLINIC_WIZARD
from ...workflow.drafts import DraftStore

router = APIRouter()


@router.post("/clinics", response_model=ClinicCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_clinic(
    payload: ClinicSubmission,
    context=Depends(get_database_with_user),
    drafts: Optional[DraftStore] = Depends(get_session_drafts),
) -> ClinicCreatedResponse:
    """Create a clinic with its first location. The caller becomes its owner."""

    user_id, db = context
    with service_errors():
        created = clinic_service.create_clinic(db, user_id, payload.model_dump())
    if drafts is not None:
        drafts.clear(CLINIC_WIZARD.name)
    return ClinicCreatedResponse(
        clinic_id=created.clinic_id,
        location_id=created.location_id,
        redirect_path=created.redirect_path,
    )


@router.get("/clinics", response_model=ClinicListResponse)
def list_clinics(context=Depends(get_database_with_user)) -> ClinicListResponse:
    user_id, db = context
    with service_errors():
        clinics = clinic_service.list_company_clinics(db, user_id)
    return ClinicListResponse(clinics=clinics)


@router.get("/clinics/{clinic_id}/metrics", response_model=ClinicMetricsResponse)
async def get_clinic_metrics(
    clinic_id: str,
    timeframe: str = Query("month"),
    force: bool = Query(False),
    user_id: str = Depends(get_current_user_id),
    metrics: MetricsService = Depends(get_metrics),
) -> ClinicMetricsResponse:
    """Revenue and bookings for the current period against the previous one."""

    with service_errors():
        result = await metrics.get_metrics(user_id, clinic_id, timeframe, force=force)
    return ClinicMetricsResponse(**result.to_dict())
