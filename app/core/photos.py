"""
Photo paths handed over by the upload collaborator.

Stored relative (e.g. "photos/abc.jpg"); exposed as a URL under STATIC_URL_PREFIX.
Absolute inputs like "/uploads/photos/abc.jpg" are reduced to the same relative form.
"""
from typing import Optional

from app.core.config import settings


def _prefix() -> str:
    return "/" + settings.static_url_prefix.strip("/")


def normalize_photo_path(path: Optional[str]) -> Optional[str]:
    if path is None:
        return None
    value = path.strip().replace("\\", "/")
    if not value:
        return None
    prefix = _prefix()
    if value.startswith(prefix + "/"):
        value = value[len(prefix) + 1:]
    return value.lstrip("/") or None


def photo_url(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    return f"{_prefix()}/{path}"
