"""Route modules for the public API."""

from . import auth, clinics, drafts, equipment, onboarding, rooms, staff

__all__ = [
    "auth",
    "clinics",
    "drafts",
    "equipment",
    "onboarding",
    "rooms",
    "staff",
]
