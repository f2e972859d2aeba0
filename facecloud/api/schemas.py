"""Pydantic schemas for the public API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


def _strip(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip()


# ---------------------------------------------------------------------------
# Clinics
# ---------------------------------------------------------------------------
class DaySchedule(BaseModel):
    is_open: bool = False
    open_time: Optional[str] = None
    close_time: Optional[str] = None


class ClinicBasics(BaseModel):
    name: str = ""
    logo: Optional[str] = Field(default=None, description="Logo as a base64 data URL")


class LocationInput(BaseModel):
    address: str = ""
    suburb: str = ""
    state: Optional[str] = None
    postcode: str = ""
    country: str = "Australia"

    @field_validator("state", mode="before")
    @classmethod
    def normalise_state(cls, value: Optional[str]) -> Optional[str]:
        value = _strip(value)
        return value.upper() if value else None


class ContactInput(BaseModel):
    phone: str = ""
    email: str = ""


class ClinicSubmission(BaseModel):
    clinic: ClinicBasics
    location: LocationInput
    contact: ContactInput
    operating_hours: Dict[str, DaySchedule] = Field(default_factory=dict)


class ClinicCreatedResponse(BaseModel):
    clinic_id: str
    location_id: str
    redirect_path: str


class ClinicSummary(BaseModel):
    id: str
    name: Optional[str] = None
    location_name: Optional[str] = None


class ClinicListResponse(BaseModel):
    clinics: List[ClinicSummary]


class MetricsWindow(BaseModel):
    start: str
    end: str


class ClinicMetricsResponse(BaseModel):
    clinic_id: str
    timeframe: str
    revenue: float
    revenue_change: float
    booking_count: int
    booking_count_change: float
    period: Dict[str, MetricsWindow]
    clinic: Optional[Dict[str, Any]] = None


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------
class StaffBasics(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: Optional[str] = None
    profile_picture: Optional[str] = Field(default=None, description="Data URL for new uploads, URL when editing")

    @field_validator("first_name", "last_name", "email", mode="before")
    @classmethod
    def strip_text(cls, value: Optional[str]) -> str:
        return _strip(value) or ""


class StaffAssignment(BaseModel):
    clinic_id: Optional[str] = None


class StaffRoleInput(BaseModel):
    role: Optional[str] = None

    @field_validator("role", mode="before")
    @classmethod
    def normalise_role(cls, value: Optional[str]) -> Optional[str]:
        value = _strip(value)
        return value.lower() if value else None


class StaffSubmission(BaseModel):
    basic: StaffBasics
    assignment: StaffAssignment = Field(default_factory=StaffAssignment)
    role: StaffRoleInput
    active: bool = True


class StaffCreatedResponse(BaseModel):
    staff_id: str
    user_id: str
    invited: bool


class StaffMember(BaseModel):
    id: str
    user_id: Optional[str] = None
    company_id: Optional[str] = None
    clinic_id: Optional[str] = None
    location_id: Optional[str] = None
    role: Optional[str] = None
    active: Optional[bool] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    profile_picture: str = ""
    clinic_name: str = ""


# ---------------------------------------------------------------------------
# Rooms and equipment
# ---------------------------------------------------------------------------
class RoomInput(BaseModel):
    clinic_id: Optional[str] = None
    name: str = ""
    room_type_id: Optional[str] = None
    notes: Optional[str] = None


class RoomSubmission(BaseModel):
    room: RoomInput


class RoomType(BaseModel):
    id: str
    name: str
    description: Optional[str] = None


class EquipmentInput(BaseModel):
    name: str = ""
    quantity: Any = 1
    clinic_id: Optional[str] = None


class EquipmentSubmission(BaseModel):
    equipment: EquipmentInput


class AvailabilityResponse(BaseModel):
    id: str
    active: bool
    message: str


# ---------------------------------------------------------------------------
# Drafts
# ---------------------------------------------------------------------------
class DraftSaveRequest(BaseModel):
    step_index: int = Field(default=0, ge=0)
    fields: Dict[str, Any] = Field(default_factory=dict)


class DraftSaveResponse(BaseModel):
    form: str
    saved: bool


class DraftResponse(BaseModel):
    form: str
    step_index: int
    fields: Dict[str, Any]
    attachments: List[str] = Field(default_factory=list)
    saved_at: float


# ---------------------------------------------------------------------------
# Auth and onboarding
# ---------------------------------------------------------------------------
class AuthConfirmRequest(BaseModel):
    url: str = Field(..., min_length=1)


class AuthConfirmResponse(BaseModel):
    state: str
    redirect_url: Optional[str] = None
    scrubbed_url: Optional[str] = None
    user_id: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None


class SetPasswordRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def normalise_email(cls, value: Optional[str]) -> Optional[str]:
        return _strip(value)


class CompanySetupRequest(BaseModel):
    company_name: str

    @model_validator(mode="after")
    def ensure_name(self) -> "CompanySetupRequest":
        self.company_name = self.company_name.strip()
        return self


class CompanySetupResponse(BaseModel):
    company_id: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class SuccessResponse(BaseModel):
    success: bool = True
