"""Custom exceptions for athena-express."""

from typing import Any


class AthenaExpressError(Exception):
    """Base exception for all athena-express errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class ConfigurationError(AthenaExpressError, TypeError):
    """Missing or malformed client configuration.

    Raised synchronously from the constructor, before any remote call.
    """

    pass


class InputError(AthenaExpressError, TypeError):
    """Missing or malformed query argument."""

    pass


class EngineError(AthenaExpressError):
    """Error returned by the remote query engine."""

    def __init__(self, code: str, message: str, operation: str | None = None) -> None:
        super().__init__(message, code=code, operation=operation)
        self.code = code
        self.operation = operation


class TransientEngineError(EngineError):
    """Whitelisted remote error that is safe to retry."""

    pass


class FatalEngineError(EngineError):
    """Remote error that must not be retried."""

    pass


class RetryLimitExceededError(AthenaExpressError):
    """Transient retry budget exhausted."""

    def __init__(self, operation: str, attempts: int, last_error: EngineError) -> None:
        super().__init__(
            f"{operation} still failing after {attempts} attempts: {last_error.message}",
            operation=operation,
            attempts=attempts,
            code=last_error.code,
        )
        self.last_error = last_error


class QueryFailedError(AthenaExpressError):
    """The engine reported a terminal FAILED state for the execution.

    ``str(error)`` is exactly the engine's own explanation.
    """

    def __init__(self, reason: str, execution_id: str | None = None) -> None:
        super().__init__(reason, execution_id=execution_id)
        self.reason = reason
        self.execution_id = execution_id


class PollLimitExceededError(AthenaExpressError):
    """Execution did not reach a terminal state within the poll budget."""

    def __init__(self, execution_id: str, max_polls: int, last_state: str) -> None:
        super().__init__(
            f"Execution {execution_id} not finished after {max_polls} polls "
            f"(last state: {last_state})",
            execution_id=execution_id,
            max_polls=max_polls,
            last_state=last_state,
        )


class QueryCancelledError(AthenaExpressError):
    """Waiting was abandoned through a cancellation event."""

    def __init__(self, execution_id: str | None = None) -> None:
        super().__init__("Query wait cancelled", execution_id=execution_id)


class ResultDecodingError(AthenaExpressError):
    """Result payload could not be decoded."""

    def __init__(self, message: str, column: str | None = None, value: str | None = None) -> None:
        super().__init__(message, column=column, value=value)


class ObjectStoreError(AthenaExpressError):
    """Object store operation failed."""

    def __init__(self, operation: str, location: str, details: str) -> None:
        super().__init__(
            f"Object store error: {operation} {location} - {details}",
            operation=operation,
            location=location,
            details=details,
        )


class QueryExecutionError(AthenaExpressError):
    """Unexpected failure while running a query, wrapping the original error."""

    def __init__(self, message: str, query: str | None = None) -> None:
        super().__init__(message, query=query)
