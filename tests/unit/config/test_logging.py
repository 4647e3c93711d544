"""Tests for logging configuration."""

import logging
from unittest.mock import MagicMock

from athena_express.config import Settings
from athena_express.exceptions import QueryFailedError
from athena_express.logging_config import (
    censor_sensitive_keys,
    log_error,
    log_operation,
    setup_logging,
)


class TestCensorSensitiveKeys:
    """Tests for the redaction processor."""

    def test_redacts_credentials(self):
        event = censor_sensitive_keys(
            None, "info", {"aws_secret_access_key": "x", "kms_key": "arn", "event": "e"}
        )
        assert event["aws_secret_access_key"] == "***REDACTED***"
        assert event["kms_key"] == "***REDACTED***"
        assert event["event"] == "e"

    def test_keeps_pagination_token(self):
        event = censor_sensitive_keys(None, "info", {"next_token": "abc"})
        assert event["next_token"] == "abc"


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_aws_loggers_quiet_at_info(self):
        setup_logging(Settings(log_level="INFO"))
        assert logging.getLogger("botocore").level == logging.WARNING

    def test_aws_loggers_follow_debug(self):
        setup_logging(Settings(log_level="DEBUG", log_format="json"))
        assert logging.getLogger("botocore").level == logging.DEBUG


class TestLogHelpers:
    """Tests for log_operation and log_error."""

    def test_log_operation(self):
        logger = MagicMock()
        log_operation(logger, "query_completed", execution_id="exec-1", items=3)
        logger.info.assert_called_once_with(
            "operation", operation="query_completed", execution_id="exec-1", items=3
        )

    def test_log_error_library_error_has_no_traceback(self):
        logger = MagicMock()
        log_error(logger, QueryFailedError("Forced Error", "exec-1"), "query")
        kwargs = logger.error.call_args.kwargs
        assert kwargs["execution_id"] == "exec-1"
        assert kwargs["error_message"] == "Forced Error"
        assert kwargs["exc_info"] is False

    def test_log_error_unexpected_error_has_traceback(self):
        logger = MagicMock()
        log_error(logger, RuntimeError("boom"), "query")
        assert logger.error.call_args.kwargs["exc_info"] is True
