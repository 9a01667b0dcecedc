# src/image_variants/core/error_handling.py

import functools
import logging
from collections import Counter

from botocore.exceptions import BotoCoreError, ClientError
from PIL import UnidentifiedImageError

from .exceptions import ImageProcessingError, ImageVariantsError, S3Error


def with_error_handling(func):
    """
    A decorator to wrap functions with standardized error handling.

    Library errors are translated into the service's exception hierarchy;
    errors that are already ``ImageVariantsError`` pass through untouched.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__ + '.' + func.__name__)
        try:
            return func(*args, **kwargs)
        except ImageVariantsError:
            raise
        except Exception as e:
            logger.error(
                f"Error in '{func.__name__}': {e}",
                exc_info=True
            )
            if isinstance(e, (ClientError, BotoCoreError)):
                raise S3Error(f"S3 operation failed in {func.__name__}: {e}") from e
            if isinstance(e, UnidentifiedImageError):
                raise ImageProcessingError(f"Failed to identify image in {func.__name__}: {e}") from e
            if isinstance(e, (OSError, ValueError)):
                raise ImageProcessingError(f"Image processing error in {func.__name__}: {e}") from e
            raise
    return wrapper


def s3_operation(func):
    """
    Decorator for object store calls: every failure surfaces as ``S3Error``.

    There is no retry here; redelivery of the whole batch is left to the
    queue that invoked us.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__ + '.' + func.__name__)
        try:
            return func(*args, **kwargs)
        except S3Error:
            raise
        except Exception as e:
            logger.error(f"S3 operation '{func.__name__}' failed: {e}")
            raise S3Error(f"S3 operation '{func.__name__}' failed: {e}") from e
    return wrapper


class BatchOperationContextManager:
    """
    Context manager for a batch invocation: counts outcomes and logs a summary.

    Skips are recorded with ``add_skip``; exceptions are logged and always
    propagate so the delivery layer can redeliver the batch.
    """
    def __init__(self, operation_name="Batch Operation"):
        self.operation_name = operation_name
        self.processed = 0
        self.skips = Counter()
        self.logger = logging.getLogger(self.__class__.__module__ + '.' + self.__class__.__name__)

    def __enter__(self):
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.logger.error(
                f"{self.operation_name} failed after {self.processed} object(s): {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            skipped = sum(self.skips.values())
            if skipped:
                breakdown = ", ".join(f"{reason}={count}" for reason, count in sorted(self.skips.items()))
                self.logger.info(
                    f"{self.operation_name} completed: {self.processed} processed, "
                    f"{skipped} skipped ({breakdown})."
                )
            else:
                self.logger.info(f"{self.operation_name} completed: {self.processed} processed.")
        return False

    def add_processed(self):
        self.processed += 1

    def add_skip(self, reason: str, item_identifier: str = "Unknown item"):
        """Record a skipped object and the reason it was skipped."""
        self.skips[getattr(reason, "value", reason)] += 1
        self.logger.debug(f"Skipped '{item_identifier}' in {self.operation_name}: {reason}")
