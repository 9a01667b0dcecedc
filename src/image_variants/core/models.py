"""Shared data models for the image variants service."""

import os
from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError


DEFAULT_WIDTHS = (50, 100, 200, 400, 600, 800, 1200)
DEFAULT_SVG_BASE_WIDTH_MIN = 1200


class VariantKind(str, Enum):
    """Kind of output artifact."""

    ORIGINAL_FORMAT = "original-format"
    WEBP = "webp"
    VECTOR_COPY = "vector-copy"


class SkipReason(str, Enum):
    """Why an object produced no variants."""

    ALREADY_RESIZED = "already-resized"
    NOT_WHITELISTED = "not-whitelisted"
    UNSUPPORTED_EXTENSION = "unsupported-extension"
    MISSING_SECTION = "missing-section"


class ResizeConfig(BaseModel):
    """Configuration for a resize invocation."""

    dest_prefix: str = "resized/"
    dest_bucket: Optional[str] = None
    widths: List[int] = Field(default_factory=lambda: list(DEFAULT_WIDTHS))
    jpeg_quality: int = Field(default=85, ge=1, le=100)
    webp_quality: int = Field(default=85, ge=1, le=100)
    png_compression: int = Field(default=9, ge=0, le=9)
    allowed_sections: List[str] = Field(default_factory=list)
    svg_base_width_min: int = Field(default=DEFAULT_SVG_BASE_WIDTH_MIN, gt=0)
    webp_svg_mode: Literal["lossy", "lossless"] = "lossy"
    vector_density: int = Field(default=300, gt=0)
    debug: bool = False

    @field_validator("widths")
    @classmethod
    def _widths_ascending(cls, value: List[int]) -> List[int]:
        if not value:
            raise ValueError("at least one width is required")
        if any(w <= 0 for w in value):
            raise ValueError("widths must be positive")
        if any(b <= a for a, b in zip(value, value[1:])):
            raise ValueError("widths must be strictly ascending")
        return value

    @field_validator("allowed_sections")
    @classmethod
    def _strip_sections(cls, value: List[str]) -> List[str]:
        return [s.strip() for s in value if s and s.strip()]

    @property
    def dest_root(self) -> str:
        """Destination prefix without trailing slashes, e.g. ``resized``."""
        return self.dest_prefix.rstrip("/")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ResizeConfig":
        """
        Build a configuration from environment variables.

        Unset variables keep their defaults. Raises ``ConfigurationError``
        when a value is present but invalid.
        """
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        if "DEST_PREFIX" in env:
            values["dest_prefix"] = env["DEST_PREFIX"]
        if env.get("DEST_BUCKET"):
            values["dest_bucket"] = env["DEST_BUCKET"]
        if env.get("ALLOWED_SECTIONS") is not None:
            values["allowed_sections"] = env["ALLOWED_SECTIONS"].split(",")
        if env.get("WEBP_SVG_MODE"):
            values["webp_svg_mode"] = env["WEBP_SVG_MODE"].strip().lower()

        try:
            if env.get("WIDTHS"):
                values["widths"] = [
                    int(part) for part in env["WIDTHS"].split(",") if part.strip()
                ]
            for var, field_name in (
                ("JPEG_QUALITY", "jpeg_quality"),
                ("WEBP_QUALITY", "webp_quality"),
                ("PNG_COMPRESSION", "png_compression"),
                ("VECTOR_DENSITY", "vector_density"),
            ):
                if env.get(var):
                    values[field_name] = int(env[var])
        except ValueError as exc:
            raise ConfigurationError(f"Invalid numeric configuration: {exc}") from exc

        # An unusable minimum falls back to the default rather than failing
        try:
            base_min = int(env.get("SVG_BASE_WIDTH_MIN", DEFAULT_SVG_BASE_WIDTH_MIN))
        except ValueError:
            base_min = DEFAULT_SVG_BASE_WIDTH_MIN
        values["svg_base_width_min"] = base_min if base_min > 0 else DEFAULT_SVG_BASE_WIDTH_MIN

        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc


class ObjectRef(BaseModel):
    """A bucket/key pair extracted from a storage notification."""

    bucket: str
    key: str


class Route(BaseModel):
    """A key split into its leading section and the remaining path."""

    section: str
    remainder: str


class SourceObject(BaseModel):
    """An object being processed, after routing and decoding."""

    bucket: str
    key: str
    section: str
    remainder: str
    extension: str
    sniffed_format: Optional[str] = None
    native_width: int = 0
    native_height: int = 0
    working_format: str = ""

    @property
    def is_vector(self) -> bool:
        return self.working_format == "svg"


class WidthTarget(BaseModel):
    """A listed width and the width actually rendered for one object."""

    requested: int
    clamped: int


class Variant(BaseModel):
    """One encoded output artifact."""

    kind: VariantKind
    width: int
    pixel_width: int
    key: str
    content_type: str
    body: bytes = Field(repr=False)


class ProcessingResult(BaseModel):
    """Outcome of processing a single object."""

    bucket: str
    key: str
    success: bool = False
    skip_reason: Optional[SkipReason] = None
    variant_keys: List[str] = Field(default_factory=list)
    processing_time: float = 0.0

    def to_summary(self) -> Dict[str, Any]:
        """JSON friendly form used in handler responses."""
        summary: Dict[str, Any] = {
            "bucket": self.bucket,
            "key": self.key,
            "ok": self.success,
        }
        if self.skip_reason is not None:
            summary["reason"] = self.skip_reason.value
        if self.variant_keys:
            summary["variants"] = list(self.variant_keys)
        return summary
