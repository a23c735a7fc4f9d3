"""Supported media formats and MIME classification."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping
from urllib.parse import urlparse

from relay_bot.core.types import MediaCategory
from relay_bot.log import get_logger

logger = get_logger(__name__)

SUPPORTED_FORMATS: Mapping[str, frozenset[str]] = MappingProxyType(
    {
        MediaCategory.IMAGE: frozenset(
            {
                "image/jpeg",
                "image/jpg",
                "image/png",
                "image/gif",
                "image/webp",
                "image/svg+xml",
            }
        ),
        MediaCategory.DOCUMENT: frozenset(
            {
                "text/plain",
                "text/markdown",
                "application/pdf",
                "text/html",
                "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                "application/vnd.ms-excel",
                "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
                "text/csv",
                "message/rfc822",
            }
        ),
        MediaCategory.AUDIO: frozenset(
            {
                "audio/mpeg",
                "audio/mp4",
                "audio/x-m4a",
                "audio/wav",
                "audio/webm",
                "audio/amr",
                "audio/ogg",  # also covers "audio/ogg; codecs=opus"
            }
        ),
        MediaCategory.VIDEO: frozenset(
            {
                "video/mp4",
                "video/quicktime",
                "video/mpeg",
                "audio/mpeg",
            }
        ),
    }
)

_IMAGE_EXTENSIONS = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
}


def normalize_mime(mime: str) -> str:
    """Drop MIME parameters and normalize case: 'Audio/OGG; codecs=opus' -> 'audio/ogg'."""
    return mime.split(";", 1)[0].strip().lower()


def is_supported_format(mime: str, category: str) -> bool:
    """Check a MIME type against the allow-list of one category.

    Unknown categories are a configuration mistake; they are logged and
    reported as unsupported rather than raised.
    """
    accepted = SUPPORTED_FORMATS.get(category)
    if accepted is None:
        logger.warning("unknown_format_category", category=category)
        return False
    return normalize_mime(mime) in accepted


def resolve_category(mime: str) -> MediaCategory | None:
    """Pick the routing category for a MIME type, or None if nothing accepts it.

    The MIME primary type wins when it names a category that accepts the
    type, so 'audio/mpeg' routes as audio even though video lists it too.
    """
    primary = normalize_mime(mime).split("/", 1)[0]
    if primary in SUPPORTED_FORMATS and is_supported_format(mime, primary):
        return MediaCategory(primary)
    for category in SUPPORTED_FORMATS:
        if is_supported_format(mime, category):
            return MediaCategory(category)
    return None


def guess_image_mime(url: str) -> str:
    path = urlparse(url).path.lower()
    for extension, mime in _IMAGE_EXTENSIONS.items():
        if path.endswith(extension):
            return mime
    return "image/png"
