"""Destination key derivation."""

import posixpath
import re
from typing import Tuple

_SEPARATOR_RUN = re.compile(r"/+")


def split_remainder(remainder: str, extension: str) -> Tuple[str, str]:
    """
    Split a remainder path into its directory and base name.

    The extension (as found in the key, without the dot) is removed from the
    basename; the directory is "" for files directly under the section.
    """
    directory = posixpath.dirname(remainder)
    base = posixpath.basename(remainder)
    if extension and base.lower().endswith("." + extension.lower()):
        base = base[: -(len(extension) + 1)]
    return directory, base


def build_key(
    dest_root: str,
    section: str,
    directory: str,
    base_name: str,
    width: int,
    extension: str,
) -> str:
    """
    Destination key for one variant.

    >>> build_key("resized", "gallery", "2024/05", "a", 400, "webp")
    'resized/gallery/2024/05/a-w400.webp'
    """
    parts = [dest_root, section]
    if directory and directory != ".":
        parts.append(directory)
    parts.append(f"{base_name}-w{width}.{extension}")
    return _SEPARATOR_RUN.sub("/", "/".join(parts))
