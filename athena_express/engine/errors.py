"""Classification of remote engine errors into transient and fatal."""

from athena_express.exceptions import EngineError, FatalEngineError, TransientEngineError

# Error codes safe to retry: throttling and connectivity failures.
TRANSIENT_ERROR_CODES = frozenset(
    {
        "TooManyRequestsException",
        "ThrottlingException",
        "NetworkingError",
        "UnknownEndpoint",
    }
)


def is_transient_error_code(code: str | None) -> bool:
    """Check whether an engine error code is on the retry whitelist."""
    return code in TRANSIENT_ERROR_CODES


def classify_engine_error(
    code: str, message: str, operation: str | None = None
) -> EngineError:
    """Build a transient or fatal engine error for ``code``.

    Examples:
        classify_engine_error("ThrottlingException", "Rate exceeded")
        -> TransientEngineError

        classify_engine_error("InvalidRequestException", "bad SQL")
        -> FatalEngineError
    """
    if is_transient_error_code(code):
        return TransientEngineError(code, message, operation)
    return FatalEngineError(code, message, operation)
