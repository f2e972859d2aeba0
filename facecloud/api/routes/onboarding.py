"""Onboarding endpoints for invited staff and new company owners."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from ..dependencies import get_authenticated_user, get_user_database
from ..errors import service_errors
from ..schemas import CompanySetupRequest, CompanySetupResponse, SetPasswordRequest, SuccessResponse
from ...auth.manager import get_auth_manager
from ...db import DatabaseClient
from ...services import accounts

router = APIRouter()


@router.post("/onboarding/set-password", response_model=SuccessResponse)
def set_password(
    payload: SetPasswordRequest,
    user: Dict[str, Any] = Depends(get_authenticated_user),
) -> SuccessResponse:
    """Set the first password for the signed-in (invited) user."""

    if (user.get("email") or "").lower() != payload.email.lower():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only set the password for your own account",
        )
    with service_errors():
        accounts.set_password(get_auth_manager(), payload.email, payload.password)
    return SuccessResponse()


@router.post("/onboarding/company", response_model=CompanySetupResponse, status_code=status.HTTP_201_CREATED)
def setup_company(
    payload: CompanySetupRequest,
    user: Dict[str, Any] = Depends(get_authenticated_user),
    db: DatabaseClient = Depends(get_user_database),
) -> CompanySetupResponse:
    with service_errors():
        result = accounts.setup_company(db, user["id"], user.get("email") or "", payload.company_name)
    return CompanySetupResponse(company_id=result.get("company_id"), details=result)
