"""Image payloads arriving from forms: data URLs, raw bytes or file dicts."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Dict, Optional, Tuple

from ..db.client import DatabaseClient
from ..errors import FaceCloudError

logger = logging.getLogger(__name__)

EXTENSIONS = {"image/jpeg": "jpg", "image/jpg": "jpg", "image/png": "png", "image/webp": "webp"}


def decode_image(value: Any, default_type: str = "image/png") -> Optional[Tuple[bytes, str]]:
    """Return ``(data, content_type)``, or None for an empty or unreadable payload."""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return (bytes(value), default_type) if value else None
    if isinstance(value, dict):
        data = value.get("data")
        content_type = value.get("content_type") or default_type
        if isinstance(data, str):
            decoded = decode_image(data, content_type)
            return (decoded[0], content_type) if decoded else None
        return (bytes(data), content_type) if data else None
    if isinstance(value, str) and value:
        content_type = default_type
        payload = value
        if value.startswith("data:") and "," in value:
            header, payload = value.split(",", 1)
            content_type = header[5:].split(";", 1)[0] or default_type
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            logger.warning("Ignoring image payload that is not valid base64")
            return None
        return (data, content_type) if data else None
    return None


def describe_image(value: Any) -> Optional[Dict[str, Any]]:
    """Size and type of an image payload, in the shape attachment rules expect."""
    decoded = decode_image(value)
    if decoded is None:
        return None
    return {"size": len(decoded[0]), "content_type": decoded[1]}


def upload_image(db: DatabaseClient, bucket: str, path_stem: str, value: Any) -> Optional[str]:
    """
    Upload an optional image and return its public URL.

    Upload failures are logged and yield None: the record is still created,
    just without the picture.
    """
    decoded = decode_image(value)
    if decoded is None:
        return None
    data, content_type = decoded
    path = f"{path_stem}.{EXTENSIONS.get(content_type, 'png')}"
    try:
        return db.upload_public_file(bucket, path, data, content_type)
    except FaceCloudError as exc:
        logger.error("Error uploading %s to %s: %s", path, bucket, exc)
        return None


__all__ = ["decode_image", "describe_image", "upload_image"]
