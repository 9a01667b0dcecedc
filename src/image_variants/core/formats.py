"""Format resolution and content types."""

import io
from typing import Optional

from PIL import Image, UnidentifiedImageError

SUPPORTED_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "jfif", "svg"})

CONTENT_TYPE_BY_EXT = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "jfif": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "svg": "image/svg+xml",
}

_SNIFFED_TO_EXT = {"jpeg": "jpeg", "png": "png", "svg": "svg"}

# How far into a file we look for an <svg root
_SVG_SNIFF_BYTES = 4096


def is_supported(extension: str) -> bool:
    return (extension or "").lower() in SUPPORTED_EXTENSIONS


def resolve(extension_hint: Optional[str], sniffed_format: Optional[str]) -> Optional[str]:
    """
    Pick the canonical working format for an object.

    A supported extension wins unchanged. Otherwise the sniffed format is
    mapped (jpeg, png, svg) with any other decoded format treated as jpg.
    Returns None when there is neither a usable hint nor a sniffed format.
    """
    ext = (extension_hint or "").lower()
    if ext in SUPPORTED_EXTENSIONS:
        return ext

    fmt = (sniffed_format or "").lower()
    if not fmt:
        return None
    return _SNIFFED_TO_EXT.get(fmt, "jpg")


def sniff_format(data: bytes) -> Optional[str]:
    """
    Detect the decoded format of raw bytes.

    Raster formats come from Pillow (lowercased, e.g. "jpeg", "png",
    "webp"). Pillow does not read SVG, so markup with an ``<svg`` element
    near the start is reported as "svg".
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            if img.format:
                return img.format.lower()
    except (UnidentifiedImageError, OSError):
        pass

    head = data[:_SVG_SNIFF_BYTES].lower()
    if b"<svg" in head:
        return "svg"
    return None


def content_type_for(extension: str) -> str:
    """MIME type for an output extension; unknown extensions are sent as JPEG."""
    return CONTENT_TYPE_BY_EXT.get(extension.lower(), CONTENT_TYPE_BY_EXT["jpg"])
