"""athena-express: run SQL on Amazon Athena and get decoded results back."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("athena-express")
except PackageNotFoundError:
    # Package is not installed, use fallback
    __version__ = "0.0.0.dev"

from athena_express.client import AthenaExpress
from athena_express.client_config import QueryConfig
from athena_express.exceptions import (
    AthenaExpressError,
    ConfigurationError,
    EngineError,
    FatalEngineError,
    InputError,
    PollLimitExceededError,
    QueryCancelledError,
    QueryExecutionError,
    QueryFailedError,
    ResultDecodingError,
    RetryLimitExceededError,
    TransientEngineError,
)
from athena_express.query.inputs import QueryRequest
from athena_express.query.models import ResultEnvelope

__all__ = [
    "__version__",
    "AthenaExpress",
    "AthenaExpressError",
    "ConfigurationError",
    "EngineError",
    "FatalEngineError",
    "InputError",
    "PollLimitExceededError",
    "QueryCancelledError",
    "QueryConfig",
    "QueryExecutionError",
    "QueryFailedError",
    "QueryRequest",
    "ResultDecodingError",
    "ResultEnvelope",
    "RetryLimitExceededError",
    "TransientEngineError",
]
