"""Query engine backends for athena-express.

Usage:
    engine = get_query_engine("athena", {"region": "eu-west-1"})
    execution_id = await engine.start_query_execution(request)
"""

from athena_express.engine.backend import MockQueryEngine, QueryEngine
from athena_express.engine.errors import (
    TRANSIENT_ERROR_CODES,
    classify_engine_error,
    is_transient_error_code,
)

__all__ = [
    "MockQueryEngine",
    "QueryEngine",
    "TRANSIENT_ERROR_CODES",
    "classify_engine_error",
    "get_query_engine",
    "is_transient_error_code",
]


def get_query_engine(
    backend_type: str,
    config: dict | None = None,
) -> QueryEngine:
    """Create a query engine instance.

    Args:
        backend_type: Type of engine ("athena", "mock")
        config: Engine-specific configuration dictionary

    Returns:
        Configured QueryEngine instance

    Raises:
        ValueError: If backend_type is unknown
    """
    config = config or {}

    if backend_type == "athena":
        from athena_express.engine.athena_backend import AthenaBackend

        return AthenaBackend(
            region=config.get("region", "us-east-1"),
            endpoint_url=config.get("endpoint_url"),
            profile_name=config.get("profile_name"),
            session=config.get("session"),
        )

    elif backend_type == "mock":
        return MockQueryEngine()

    else:
        raise ValueError(
            f"Unknown query engine: {backend_type}. Supported engines: athena, mock"
        )
