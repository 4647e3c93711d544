"""Logging configuration for athena-express."""

import logging
import sys
from datetime import datetime, timezone
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from athena_express.config import Settings, get_settings

SENSITIVE_KEYS = frozenset({"secret", "password", "kms_key", "session_token", "access_key"})

# Very chatty at DEBUG: every request and response header.
AWS_LOGGERS = ("botocore", "aiobotocore", "aioboto3", "urllib3")


def add_timestamp(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add UTC timestamp to log entry."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def censor_sensitive_keys(
    logger: Any, method_name: str, event_dict: EventDict
) -> EventDict:
    """Redact credentials and KMS key material.

    ``next_token`` is a pagination cursor and is kept.
    """
    for key in list(event_dict.keys()):
        lowered = key.lower()
        if any(sensitive in lowered for sensitive in SENSITIVE_KEYS):
            event_dict[key] = "***REDACTED***"

    return event_dict


def setup_logging(settings: Settings | None = None) -> None:
    """Configure structlog and the stdlib root logger from settings."""
    settings = settings or get_settings()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_timestamp,
        censor_sensitive_keys,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.log_level)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)

    aws_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in AWS_LOGGERS:
        logging.getLogger(name).setLevel(aws_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_operation(
    logger: structlog.stdlib.BoundLogger,
    operation: str,
    execution_id: str | None = None,
    **kwargs: Any,
) -> None:
    """Log a query lifecycle step with its execution id."""
    context: dict[str, Any] = {"operation": operation}
    if execution_id:
        context["execution_id"] = execution_id
    context.update(kwargs)

    logger.info("operation", **context)


def log_error(
    logger: structlog.stdlib.BoundLogger,
    error: Exception,
    operation: str,
    execution_id: str | None = None,
    **kwargs: Any,
) -> None:
    """
    Log a failed operation.

    Library errors carry their own context (error code, execution id,
    failure reason) and are logged without a traceback; anything else is
    unexpected and gets one.
    """
    context: dict[str, Any] = {}

    error_context = getattr(error, "context", None)
    expected = isinstance(error_context, dict)
    if expected:
        context.update({key: value for key, value in error_context.items() if value is not None})

    context.update(
        operation=operation,
        error_type=type(error).__name__,
        error_message=str(error),
    )

    if execution_id:
        context["execution_id"] = execution_id
    context.update(kwargs)

    logger.error("operation_failed", **context, exc_info=not expected)
