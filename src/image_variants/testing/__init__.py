"""Testing utilities and fakes for the image variants service."""

from .fakes import (
    FakeS3Client,
    FakeLogger,
    S3Object,
    S3Bucket,
    create_test_image,
    create_test_svg,
    make_queue_event,
    make_s3_notification,
    setup_test_s3_environment,
)

__all__ = [
    "FakeS3Client",
    "FakeLogger",
    "S3Object",
    "S3Bucket",
    "create_test_image",
    "create_test_svg",
    "make_queue_event",
    "make_s3_notification",
    "setup_test_s3_environment",
]
