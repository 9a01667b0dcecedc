"""Protocols the services depend on, so tests can pass in fakes."""

from typing import Any, Dict, Optional, Protocol

from .observability import LogContext


class S3ClientProtocol(Protocol):
    """The two calls the pipeline makes on a boto3 S3 client."""

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Response with a readable ``Body`` stream."""
        ...

    def put_object(
        self, Bucket: str, Key: str, Body: bytes, ContentType: str
    ) -> Dict[str, Any]:
        ...


class LoggerProtocol(Protocol):
    """Context-aware logger; keyword fields are logged next to the context."""

    def debug(self, message: str, context: Optional[LogContext] = None, **fields: Any) -> None:
        ...

    def info(self, message: str, context: Optional[LogContext] = None, **fields: Any) -> None:
        ...

    def warning(self, message: str, context: Optional[LogContext] = None, **fields: Any) -> None:
        ...

    def error(self, message: str, context: Optional[LogContext] = None, **fields: Any) -> None:
        ...
