"""Core components of the image variants service."""

from .logging_config import get_logger, setup_logger
from .exceptions import (
    ImageVariantsError,
    MalformedBatchError,
    ImageProcessingError,
    S3Error,
    ConfigurationError,
)
from .models import (
    ObjectRef,
    ProcessingResult,
    ResizeConfig,
    Route,
    SkipReason,
    SourceObject,
    Variant,
    VariantKind,
    WidthTarget,
)
from .routing import route, split_first_segment
from .formats import resolve, sniff_format, content_type_for
from .widths import plan
from .paths import build_key, split_remainder

__all__ = [
    "ResizeConfig",
    "ObjectRef",
    "Route",
    "SourceObject",
    "WidthTarget",
    "Variant",
    "VariantKind",
    "SkipReason",
    "ProcessingResult",
    "route",
    "split_first_segment",
    "resolve",
    "sniff_format",
    "content_type_for",
    "plan",
    "build_key",
    "split_remainder",
    "setup_logger",
    "get_logger",
    "ImageVariantsError",
    "MalformedBatchError",
    "ImageProcessingError",
    "S3Error",
    "ConfigurationError",
]
