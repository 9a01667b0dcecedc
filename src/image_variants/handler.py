"""
Queue-triggered entry point.

Receives a batch of SQS records wrapping S3 ObjectCreated notifications,
writes the resized variants and returns a per-object result list. Any
failure is logged and re-raised so the queue redelivers the whole batch.
"""

import json
from typing import Any, Dict, Optional

from .core import ResizeConfig, get_logger
from .core.factories import ProcessingPipelineFactory, S3ClientFactory
from .core.logging_config import set_debug
from .core.protocols import S3ClientProtocol
from .core.services import summarize

_s3_client: Optional[S3ClientProtocol] = None


def _default_s3_client() -> S3ClientProtocol:
    # Reused across warm invocations
    global _s3_client
    if _s3_client is None:
        _s3_client = S3ClientFactory.create_s3_client()
    return _s3_client


def process_event(
    event: Dict[str, Any],
    config: ResizeConfig,
    s3_client: Optional[S3ClientProtocol] = None,
) -> Dict[str, Any]:
    """Run a batch event with an explicit configuration and return the response."""
    if config.debug:
        set_debug(True)
    pipeline = ProcessingPipelineFactory.create_pipeline(
        s3_client=s3_client or _default_s3_client(), debug=config.debug
    )
    results = pipeline.process_event(event, config)
    return {"statusCode": 200, "body": json.dumps(summarize(results))}


def handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """Lambda entry point; configuration comes from the environment."""
    logger = get_logger("handler")
    try:
        config = ResizeConfig.from_env()
        logger.info(f"Received {len(event.get('Records') or [])} record(s)")
        return process_event(event, config)
    except Exception as e:
        logger.error(f"Batch failed, leaving it for redelivery: {e}", exc_info=True)
        raise
