"""Event lines for FaceCloud domain writes.

Services call :func:`log` once per committed change (clinic created, staff
member invited or deactivated, room or equipment added, password set) so the
log holds one line per record change with the ids needed to trace it.
"""

from __future__ import annotations

import logging
from typing import Any

_LOGGER = logging.getLogger("facecloud.events")


def _render(parts: tuple[object, ...], metadata: dict[str, Any]) -> str:
    message = " ".join(str(part) for part in parts if part is not None).strip()
    if metadata:
        pairs = " ".join(f"{key}={value}" for key, value in sorted(metadata.items()))
        message = f"{message} | {pairs}"
    return message


def log(*parts: object, **metadata: Any) -> None:
    """Emit an info-level event, e.g. ``log("Clinic created", clinic_id=...)``."""

    if not logging.getLogger().handlers and not _LOGGER.handlers:
        logging.basicConfig(level=logging.INFO)
    _LOGGER.info(_render(parts, metadata))


__all__ = ["log"]
