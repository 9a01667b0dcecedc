"""Key routing: section extraction, reprocessing guard and section allow-list."""

import posixpath
from typing import Iterable, Union

from .models import Route, SkipReason


def split_first_segment(key: str) -> Route:
    """
    Split an object key into its first path segment and the rest.

    Leading slashes are ignored, so ``/gallery/a/b.png`` gives section
    ``gallery`` and remainder ``a/b.png``.
    """
    parts = key.lstrip("/").split("/")
    return Route(section=parts[0], remainder="/".join(parts[1:]))


def route(
    key: str, dest_root: str, allowed_sections: Iterable[str] = ()
) -> Union[Route, SkipReason]:
    """
    Classify a key as routable or skipped.

    Args:
        key: Decoded object key
        dest_root: Destination root without trailing slash (e.g. "resized")
        allowed_sections: Sections to accept; empty means all

    Returns:
        The ``Route`` for the key, or the ``SkipReason`` it was rejected for
    """
    routed = split_first_segment(key)
    if not routed.section or not routed.remainder:
        return SkipReason.MISSING_SECTION

    if routed.section == dest_root:
        return SkipReason.ALREADY_RESIZED

    allow = set(allowed_sections)
    if allow and routed.section not in allow:
        return SkipReason.NOT_WHITELISTED

    return routed


def extension_of(path: str) -> str:
    """Lowercased text after the last dot of the basename."""
    base = posixpath.basename(path)
    return base.rsplit(".", 1)[-1].lower()
