"""Factory classes for creating configured service instances."""

import logging
from typing import Any, Optional

import boto3

from .logging_config import get_logger
from .observability import StructuredLogger
from .protocols import LoggerProtocol, S3ClientProtocol
from .services import BatchOrchestrator, ObjectStore, VariantService


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str, level: Optional[int] = None) -> LoggerProtocol:
        """Create a context-aware logger under the service logger tree."""
        logger = get_logger(name)
        if level is not None:
            logger.setLevel(level)
        return StructuredLogger(logger=logger)


class S3ClientFactory:
    """Factory for creating S3 client instances."""

    @staticmethod
    def create_s3_client(**kwargs: Any) -> S3ClientProtocol:
        """Create S3 client with optional configuration."""
        session = boto3.Session()
        return session.client("s3", **kwargs)  # type: ignore


class ProcessingPipelineFactory:
    """Factory for creating the complete resize pipeline."""

    @staticmethod
    def create_pipeline(
        s3_client: Optional[S3ClientProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        debug: bool = False,
    ) -> BatchOrchestrator:
        """Create a fully wired batch orchestrator."""
        if s3_client is None:
            s3_client = S3ClientFactory.create_s3_client()

        if logger is None:
            logger = LoggerFactory.create_logger(
                "pipeline", logging.DEBUG if debug else None
            )

        store = ObjectStore(s3_client)
        variant_service = VariantService(store, logger)
        return BatchOrchestrator(variant_service, logger)
