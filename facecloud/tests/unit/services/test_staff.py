"""Tests for the staff wizard and staff membership services."""

from __future__ import annotations

import pytest

from facecloud.errors import NotFoundError, PermissionDeniedError, ValidationError
from facecloud.services import staff as staff_service
from facecloud.services.session_storage import SessionStorage
from facecloud.wizards.staff import staff_wizard
from facecloud.workflow.drafts import DraftStore


def _submission(**overrides):
    submission = {
        "basic": {"first_name": "Sam", "last_name": "Lee", "email": "sam@example.com", "phone": "0412 345 678"},
        "assignment": {"clinic_id": None},
        "role": {"role": "nurse"},
    }
    submission.update(overrides)
    return submission


def _staff_row(**overrides):
    row = {
        "id": "staff-1",
        "user_id": "member-1",
        "company_id": "company-1",
        "clinic_id": "clinic-1",
        "role": "nurse",
        "active": True,
        "user_profiles": {"first_name": "Sam", "last_name": "Lee", "email": "sam@example.com"},
        "clinics": {"name": "Bondi Clinic"},
    }
    row.update(overrides)
    return row


def test_single_clinic_skips_picker_and_auto_assigns(session_storage: SessionStorage) -> None:
    wizard = staff_wizard(DraftStore(session_storage, debounce_seconds=0))
    wizard.update("basic", {"first_name": "Sam", "last_name": "Lee", "email": "sam@example.com"})

    wizard.set_context(clinics=[{"id": "clinic-1", "name": "Bondi Clinic"}])

    assert wizard.values["assignment"]["clinic_id"] == "clinic-1"
    assert wizard.advance() is True
    assert wizard.current.id == "role"


def test_several_clinics_show_the_picker(session_storage: SessionStorage) -> None:
    wizard = staff_wizard(
        DraftStore(session_storage, debounce_seconds=0),
        clinics=[{"id": "clinic-1"}, {"id": "clinic-2"}],
    )
    wizard.update("basic", {"first_name": "Sam", "last_name": "Lee", "email": "sam@example.com"})

    assert wizard.advance() is True
    assert wizard.current.id == "clinic"
    assert wizard.advance() is False
    assert [error.message for error in wizard.errors] == ["Please select a clinic"]


def test_editing_keeps_the_picker_and_skips_draft_restore(session_storage: SessionStorage) -> None:
    drafts = DraftStore(session_storage, debounce_seconds=0)
    drafts.save("new-staff", {"basic": {"first_name": "Draft"}})

    wizard = staff_wizard(
        drafts,
        clinics=[{"id": "clinic-1"}],
        existing={"basic": {"first_name": "Sam", "last_name": "Lee", "email": "sam@example.com"}},
    )

    assert wizard.values["basic"]["first_name"] == "Sam"
    assert wizard.values["assignment"]["clinic_id"] is None
    assert [step.id for step in wizard.sequencer.navigable_steps] == ["basic", "clinic", "role", "review"]


def test_create_staff_invites_unknown_email(db, auth) -> None:
    clinic = db.insert_clinic({"name": "Bondi Clinic"})
    db.insert_location({"clinic_id": clinic["id"], "name": "Bondi"})

    result = staff_service.create_staff(
        db, db, auth, "owner-1", _submission(assignment={"clinic_id": clinic["id"]})
    )

    assert result["invited"] is True
    assert result["user_id"] == "invited-1"
    assert auth.invites[0]["email"] == "sam@example.com"
    assert auth.invites[0]["redirect_to"] == "https://app.facecloud.test/dashboard?onboard=true"
    assert auth.invites[0]["data"]["first_name"] == "Sam"
    assert db.rows("staff")[0]["role"] == "nurse"
    assignment = db.rows("staff_assignments")[0]
    assert assignment["staff_id"] == result["staff_id"]
    assert assignment["primary_location"] is True


def test_create_staff_reuses_existing_member(db, auth) -> None:
    db.profiles["sam@example.com"] = {"id": "member-1"}
    existing = db.insert_staff({"user_id": "member-1", "company_id": "company-1", "role": "nurse"})

    result = staff_service.create_staff(db, db, auth, "owner-1", _submission(role={"role": "owner"}))

    assert result == {"staff_id": existing["id"], "user_id": "member-1", "invited": False}
    assert auth.invites == []
    assert len(db.rows("staff")) == 1
    assert db.owners == [{"company_id": "company-1", "user_id": "member-1", "created_by": "owner-1"}]


def test_create_staff_requires_company(db, auth) -> None:
    db.company_id = None

    with pytest.raises(PermissionDeniedError):
        staff_service.create_staff(db, db, auth, "user-1", _submission())


def test_create_staff_validates_role_and_phone(db, auth) -> None:
    submission = _submission(role={"role": "janitor"})
    submission["basic"]["phone"] = "555"

    with pytest.raises(ValidationError) as exc:
        staff_service.create_staff(db, db, auth, "owner-1", submission)

    assert exc.value.by_field() == {
        "basic.phone": ["Please enter a valid Australian phone number"],
        "role.role": ["Role is required"],
    }


def test_get_staff_flattens_profile(db) -> None:
    db.staff_rows["staff-1"] = _staff_row(clinics=None)

    staff = staff_service.get_staff(db, "staff-1")

    assert staff["first_name"] == "Sam"
    assert staff["clinic_name"] == "No Clinic Assigned"


def test_update_staff_requires_manager(db) -> None:
    db.staff_rows["staff-1"] = _staff_row()
    db.role = "doctor"

    with pytest.raises(PermissionDeniedError):
        staff_service.update_staff(db, "user-1", "staff-1", _submission())

    assert db.staff_updates == []


def test_update_staff_writes_profile_and_membership(db) -> None:
    db.staff_rows["staff-1"] = _staff_row()
    db.role = "manager"
    submission = _submission(role={"role": "doctor"}, assignment={"clinic_id": "clinic-2"}, active=False)

    staff_service.update_staff(db, "user-1", "staff-1", submission)

    assert db.profile_updates[0]["id"] == "member-1"
    assert db.profile_updates[0]["phone"] == "0412 345 678"
    update = db.staff_updates[0]
    assert update["role"] == "doctor"
    assert update["clinic_id"] == "clinic-2"
    assert update["active"] is False


def test_soft_delete_marks_inactive(db) -> None:
    db.staff_rows["staff-1"] = _staff_row()

    staff_service.soft_delete_staff(db, "owner-1", "staff-1")

    assert db.staff_rows["staff-1"]["active"] is False


def test_unknown_staff_member(db) -> None:
    with pytest.raises(NotFoundError):
        staff_service.soft_delete_staff(db, "owner-1", "missing")


def test_resend_invitation(db, auth) -> None:
    db.staff_rows["staff-1"] = _staff_row()

    staff_service.resend_invitation(db, auth, "owner-1", "staff-1")

    assert auth.invites[0]["email"] == "sam@example.com"
    assert auth.invites[0]["data"]["staff_id"] == "staff-1"
    assert db.staff_updates[-1]["updated_by"] == "owner-1"
