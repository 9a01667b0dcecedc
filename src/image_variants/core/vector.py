"""
SVG handling: aspect ratio detection, root size rewriting and rasterization.

Size attributes are rewritten with pattern matching on the root ``<svg>``
start tag only; the rest of the document is passed through untouched.
Missing or unusable size hints never raise: the aspect ratio falls back
from ``viewBox`` to ``width``/``height`` and finally to 1:1.
"""

import io
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image

from .exceptions import ImageProcessingError
from .logging_config import get_logger

logger = get_logger("vector")

_ROOT_TAG = re.compile(r"<svg\b(?P<attrs>[^>]*?)(?P<close>\s*/?)>", re.IGNORECASE)

# Attribute names must not be part of a longer name (stroke-width, svg:width)
_ATTR_TEMPLATE = r"(?<![\w:.-]){name}\s*=\s*(?P<q>[\"'])(?P<value>.*?)(?P=q)"

_LENGTH = re.compile(r"^\s*(\d*\.?\d+)\s*(?:px)?\s*$", re.IGNORECASE)

# librsvg/cairo render user units at 72 dpi
_CSS_DPI = 72.0


def _attr_pattern(name: str) -> "re.Pattern[str]":
    return re.compile(_ATTR_TEMPLATE.format(name=name), re.IGNORECASE)


_WIDTH_ATTR = _attr_pattern("width")
_HEIGHT_ATTR = _attr_pattern("height")
_VIEWBOX_ATTR = _attr_pattern("viewBox")


@dataclass(frozen=True)
class PreparedVector:
    """A vector source ready to be emitted at one target width."""

    vector_copy: bytes
    raster_ready_markup: bytes
    raster_width: int
    target_width: int
    target_height: int


def _decode(markup: bytes) -> str:
    return markup.decode("utf-8", errors="surrogateescape")


def _encode(text: str) -> bytes:
    return text.encode("utf-8", errors="surrogateescape")


def _root_attrs(text: str) -> Optional[str]:
    match = _ROOT_TAG.search(text)
    return match.group("attrs") if match else None


def _parse_length(value: str) -> Optional[float]:
    match = _LENGTH.match(value)
    return float(match.group(1)) if match else None


def _viewbox_size(attrs: str) -> Optional[Tuple[float, float]]:
    match = _VIEWBOX_ATTR.search(attrs)
    if not match:
        return None
    parts = [p for p in re.split(r"[\s,]+", match.group("value").strip()) if p]
    if len(parts) != 4:
        return None
    try:
        width, height = float(parts[2]), float(parts[3])
    except ValueError:
        return None
    if width > 0 and height > 0:
        return width, height
    return None


def _explicit_size(attrs: str) -> Optional[Tuple[float, float]]:
    w_match = _WIDTH_ATTR.search(attrs)
    h_match = _HEIGHT_ATTR.search(attrs)
    if not (w_match and h_match):
        return None
    width = _parse_length(w_match.group("value"))
    height = _parse_length(h_match.group("value"))
    if width and height and width > 0 and height > 0:
        return width, height
    return None


def aspect_ratio(markup: bytes) -> float:
    """
    Height/width ratio of the drawing.

    Priority: root ``viewBox``, then root ``width``/``height`` (unitless
    or px), then 1.0.
    """
    attrs = _root_attrs(_decode(markup))
    if attrs is None:
        logger.debug("No <svg> root element found, using 1:1 ratio")
        return 1.0

    size = _viewbox_size(attrs) or _explicit_size(attrs)
    if size is None:
        logger.debug("No usable size hints on <svg> root, using 1:1 ratio")
        return 1.0
    width, height = size
    return height / width


def intrinsic_width(markup: bytes, density: int = 300) -> int:
    """
    Native pixel width of a vector source when rendered at ``density`` dpi.

    Uses the root width attribute, else the viewBox width. Returns 0 when
    neither is usable, which the width planner treats as unbounded.
    """
    attrs = _root_attrs(_decode(markup))
    if attrs is None:
        return 0

    width: Optional[float] = None
    w_match = _WIDTH_ATTR.search(attrs)
    if w_match:
        width = _parse_length(w_match.group("value"))
    if not width:
        viewbox = _viewbox_size(attrs)
        width = viewbox[0] if viewbox else None
    if not width:
        return 0
    return int(round(width * density / _CSS_DPI))


def rewrite_size_attributes(markup: bytes, width: int) -> bytes:
    """
    Set ``width``/``height`` on the root ``<svg>`` element.

    Existing attributes are replaced in place and missing ones appended;
    height is ``round(width * aspect_ratio)``. Applying this twice with the
    same width gives the same result.
    """
    text = _decode(markup)
    match = _ROOT_TAG.search(text)
    if match is None:
        return markup

    height = int(round(width * aspect_ratio(markup)))
    attrs = match.group("attrs")

    if _WIDTH_ATTR.search(attrs):
        attrs = _WIDTH_ATTR.sub(f'width="{width}"', attrs, count=1)
    else:
        attrs += f' width="{width}"'
    if _HEIGHT_ATTR.search(attrs):
        attrs = _HEIGHT_ATTR.sub(f'height="{height}"', attrs, count=1)
    else:
        attrs += f' height="{height}"'

    tag = f"<svg{attrs}{match.group('close')}>"
    return _encode(text[: match.start()] + tag + text[match.end():])


def prepare(markup: bytes, target_width: int, base_width_min: int) -> PreparedVector:
    """
    Prepare a vector source for one target width.

    The raster is rendered at ``max(base_width_min, target_width)`` so
    small targets are downsampled from a sharp render.
    """
    ratio = aspect_ratio(markup)
    raster_width = max(base_width_min, target_width)
    return PreparedVector(
        vector_copy=markup,
        raster_ready_markup=rewrite_size_attributes(markup, raster_width),
        raster_width=raster_width,
        target_width=target_width,
        target_height=max(1, int(round(target_width * ratio))),
    )


def rasterize_to_webp(
    prepared: PreparedVector, lossless: bool = False, quality: int = 85
) -> bytes:
    """Render the prepared markup, downsize to the target width and encode WebP."""
    import cairosvg

    try:
        png_bytes = cairosvg.svg2png(bytestring=prepared.raster_ready_markup)
        with Image.open(io.BytesIO(png_bytes)) as rendered:
            rendered.load()
            logger.debug(
                f"Rasterized SVG at {rendered.width}x{rendered.height}, "
                f"resizing to {prepared.target_width}x{prepared.target_height}"
            )
            image = rendered.convert("RGBA").resize(
                (prepared.target_width, prepared.target_height),
                Image.Resampling.LANCZOS,
            )
    except Exception as exc:
        raise ImageProcessingError(f"Failed to rasterize SVG: {exc}") from exc

    output = io.BytesIO()
    if lossless:
        image.save(output, format="WEBP", lossless=True)
    else:
        image.save(output, format="WEBP", quality=quality)
    return output.getvalue()
