"""Context-aware logging for per-object processing."""

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from .logging_config import get_logger


def _new_correlation_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class LogContext:
    """
    Identifies the object and pipeline stage a log line belongs to.

    Contexts are immutable; ``with_operation`` and ``with_metadata`` return
    copies sharing the same correlation id, so every line written while
    processing one object can be grepped together.
    """

    correlation_id: str = field(default_factory=_new_correlation_id)
    operation: str = ""
    component: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_object(cls, bucket: str, key: str, component: str = "") -> "LogContext":
        return cls(operation="process_object", component=component, metadata={"bucket": bucket, "key": key})

    def with_operation(self, operation: str) -> "LogContext":
        return replace(self, operation=operation)

    def with_metadata(self, **kwargs: Any) -> "LogContext":
        return replace(self, metadata={**self.metadata, **kwargs})


def render(message: str, context: Optional[LogContext] = None, **fields: Any) -> str:
    """
    Format a message with its context.

    >>> render("Wrote variants", LogContext("abc", "upload", metadata={"key": "a.png"}), n=2)
    '[upload] [abc] Wrote variants (key=a.png, n=2)'
    """
    values = dict(fields)
    if context is not None:
        values = {**context.metadata, **fields}
        message = f"[{context.correlation_id}] {message}"
        if context.operation:
            message = f"[{context.operation}] {message}"
    if values:
        message = f"{message} ({', '.join(f'{k}={v}' for k, v in values.items())})"
    return message


class StructuredLogger:
    """``LoggerProtocol`` implementation on top of a stdlib logger."""

    def __init__(self, name: str = "service", logger: Optional[logging.Logger] = None):
        self._logger = logger or get_logger(name)

    def _log(self, level: int, message: str, context: Optional[LogContext], fields: Dict[str, Any]) -> None:
        # Skip formatting for suppressed levels; DEBUG fires per variant
        if self._logger.isEnabledFor(level):
            self._logger.log(level, render(message, context, **fields))

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, context, kwargs)

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._log(logging.INFO, message, context, kwargs)

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, context, kwargs)

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, context, kwargs)
