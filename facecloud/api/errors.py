"""Translate service errors into HTTP responses."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException, status

from ..errors import (
    AuthExchangeError,
    FaceCloudError,
    InvalidStepError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


def to_http_exception(exc: FaceCloudError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=422, detail=exc.to_dict())
    if isinstance(exc, AuthExchangeError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        )
    if isinstance(exc, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, (NotFoundError, InvalidStepError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, NetworkError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@contextmanager
def service_errors() -> Iterator[None]:
    """Re-raise package errors as :class:`HTTPException` inside a route body."""
    try:
        yield
    except FaceCloudError as exc:
        raise to_http_exception(exc) from exc


__all__ = ["service_errors", "to_http_exception"]
