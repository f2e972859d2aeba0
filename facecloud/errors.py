"""Error taxonomy shared by the workflow core, services and API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence


@dataclass(frozen=True)
class FieldError:
    """A single failed rule, addressed by dotted field path."""

    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


class FaceCloudError(Exception):
    """Base class for every error raised by the package."""


class ValidationError(FaceCloudError):
    """Local form-field failures. Blocks step advancement or submission."""

    def __init__(self, errors: Sequence[FieldError], message: Optional[str] = None) -> None:
        self.errors: List[FieldError] = list(errors)
        if message is None:
            message = self.errors[0].message if self.errors else "Validation failed"
        super().__init__(message)

    def by_field(self) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = {}
        for error in self.errors:
            grouped.setdefault(error.field, []).append(error.message)
        return grouped

    def to_dict(self) -> Dict[str, Any]:
        return {"message": str(self), "errors": [error.to_dict() for error in self.errors]}


class InvalidStepError(FaceCloudError):
    """Navigation to a step that does not exist or is currently skipped."""

    def __init__(self, step_id: str, reason: str = "unknown step") -> None:
        self.step_id = step_id
        self.reason = reason
        super().__init__(f"Cannot navigate to step '{step_id}': {reason}")


class InvalidTransitionError(FaceCloudError):
    """A state machine was asked to move along an edge it does not have."""

    def __init__(self, current: object, target: object) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Transition {current} -> {target} is not allowed")


class AuthExchangeError(FaceCloudError):
    """Token invalid, expired, already used, or the exchange timed out."""


class NetworkError(FaceCloudError):
    """A call to the hosted backend failed. Callers offer a manual retry."""


class SerializationError(FaceCloudError):
    """Draft payload could not be encoded or decoded."""


class NotFoundError(FaceCloudError):
    """Requested record does not exist or is hidden by row-level policies."""


class PermissionDeniedError(FaceCloudError):
    """Authenticated user lacks the role required for the operation."""


__all__ = [
    "AuthExchangeError",
    "FaceCloudError",
    "FieldError",
    "InvalidStepError",
    "InvalidTransitionError",
    "NetworkError",
    "NotFoundError",
    "PermissionDeniedError",
    "SerializationError",
    "ValidationError",
]
