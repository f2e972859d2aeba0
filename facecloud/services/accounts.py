"""Account onboarding: first password and company setup."""

from __future__ import annotations

from typing import Any, Dict

from ..auth.manager import AuthManager
from ..config import CONFIG
from ..db.client import DatabaseClient
from ..errors import FieldError, NetworkError, ValidationError
from ..logger import log
from ..workflow.rules import EmailAddress, MinLength, Required, validate


def set_password(auth: AuthManager, email: str, password: str) -> str:
    """Give an invited user their first password. Returns the user id."""
    validate(
        (
            Required("email", "Email and password are required"),
            EmailAddress("email", "Please enter a valid email address"),
            Required("password", "Email and password are required"),
        ),
        {"email": email, "password": password},
    )
    if len(password) < CONFIG.password_min_length:
        raise ValidationError(
            [FieldError("password", f"Password must be at least {CONFIG.password_min_length} characters")]
        )
    user_id = auth.set_password_for_email(email.strip(), password)
    log("Password set", user_id=user_id)
    return user_id


def setup_company(db: DatabaseClient, user_id: str, email: str, company_name: str) -> Dict[str, Any]:
    """Create the caller's company and ownership records in one database call."""
    validate(
        (MinLength("company_name", 2, "Company name must be at least 2 characters"),),
        {"company_name": company_name},
    )
    result = db.setup_new_company(user_id, email, company_name.strip())
    if not result:
        raise NetworkError("Company setup returned no result")
    log("Company set up", user_id=user_id, company_id=result.get("company_id"))
    return result


__all__ = ["set_password", "setup_company"]
