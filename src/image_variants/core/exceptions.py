"""Custom exceptions for the image variants service."""


class ImageVariantsError(Exception):
    """Base exception for all image variants errors."""


class MalformedBatchError(ImageVariantsError):
    """Raised when a delivery record or storage notification cannot be parsed."""


class S3Error(ImageVariantsError):
    """Error raised for S3 related failures."""


class ConfigurationError(ImageVariantsError):
    """Error raised for invalid configuration options."""


class ImageProcessingError(ImageVariantsError):
    """Error raised when decoding, rasterizing or encoding an image fails."""
