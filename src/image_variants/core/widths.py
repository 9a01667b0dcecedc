"""Width planning for the resize matrix."""

from typing import List, Optional, Sequence

from .models import DEFAULT_WIDTHS, WidthTarget


def clamp_width(requested: int, native_width: Optional[int]) -> int:
    """Never plan wider than the source; an unknown native width does not clamp."""
    if not native_width or native_width <= 0:
        return requested
    return min(requested, native_width)


def plan(
    native_width: Optional[int], widths: Sequence[int] = DEFAULT_WIDTHS
) -> List[WidthTarget]:
    """
    Expand the fixed width list into per-object targets.

    One target is returned per listed width, in list order. Once the
    native width is reached, later targets repeat it; duplicates are kept
    because each listed width still gets its own output key.
    """
    return [
        WidthTarget(requested=w, clamped=clamp_width(w, native_width)) for w in widths
    ]
