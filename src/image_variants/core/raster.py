"""Raster encoding: resize without upscaling, original-format and WebP outputs."""

import io
from dataclasses import dataclass

from PIL import Image

from .error_handling import with_error_handling
from .formats import content_type_for

JPEG_EXTENSIONS = ("jpg", "jpeg", "jfif")


@dataclass(frozen=True)
class EncodeOptions:
    """Encoder knobs taken from ``ResizeConfig``."""

    jpeg_quality: int = 85
    png_compression: int = 9
    webp_quality: int = 85


@dataclass(frozen=True)
class EncodedPair:
    """The two buffers produced for one raster target width."""

    original: bytes
    original_extension: str
    original_content_type: str
    webp: bytes
    pixel_width: int
    pixel_height: int


def decode(source: bytes) -> Image.Image:
    """Open and fully load an image from bytes."""
    image = Image.open(io.BytesIO(source))
    image.load()
    return image


def resize_without_enlargement(image: Image.Image, target_width: int) -> Image.Image:
    """Scale to ``target_width`` keeping aspect ratio; images already narrower are kept."""
    if target_width <= 0 or image.width <= target_width:
        return image.copy()
    target_height = max(1, int(round(image.height * target_width / image.width)))
    return image.resize((target_width, target_height), Image.Resampling.LANCZOS)


def _flatten_for_jpeg(image: Image.Image) -> Image.Image:
    if image.mode in ("RGB", "L"):
        return image
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return image.convert("RGB")


def _encode_original(image: Image.Image, fmt: str, options: EncodeOptions):
    output = io.BytesIO()
    if fmt in JPEG_EXTENSIONS:
        _flatten_for_jpeg(image).save(
            output, format="JPEG", quality=options.jpeg_quality, optimize=True
        )
        extension = fmt
    elif fmt == "png":
        image.save(output, format="PNG", compress_level=options.png_compression)
        extension = "png"
    else:
        _flatten_for_jpeg(image).save(
            output, format="JPEG", quality=options.jpeg_quality, optimize=True
        )
        extension = "jpg"
    return output.getvalue(), extension


def _encode_webp(image: Image.Image, options: EncodeOptions) -> bytes:
    if image.mode not in ("RGB", "RGBA"):
        has_alpha = "A" in image.getbands() or "transparency" in image.info
        image = image.convert("RGBA" if has_alpha else "RGB")
    output = io.BytesIO()
    image.save(output, format="WEBP", quality=options.webp_quality)
    return output.getvalue()


@with_error_handling
def encode(
    source: bytes, target_width: int, fmt: str, options: EncodeOptions
) -> EncodedPair:
    """
    Produce the original-format and WebP buffers for one target width.

    Both encodings start from the same resized image, so WebP quality is
    applied once and never on top of a lossy original-format encode.

    Args:
        source: Raw source bytes (png/jpeg/jfif)
        target_width: Width to resize to; never upscaled past native width
        fmt: Working format from the format resolver
        options: Quality and compression settings

    Returns:
        EncodedPair with both buffers and the output extension/content type
    """
    return encode_image(decode(source), target_width, fmt, options)


def encode_image(
    image: Image.Image, target_width: int, fmt: str, options: EncodeOptions
) -> EncodedPair:
    """Same as ``encode`` for an already decoded image."""
    resized = resize_without_enlargement(image, target_width)
    original, extension = _encode_original(resized, fmt, options)
    return EncodedPair(
        original=original,
        original_extension=extension,
        original_content_type=content_type_for(extension),
        webp=_encode_webp(resized, options),
        pixel_width=resized.width,
        pixel_height=resized.height,
    )
