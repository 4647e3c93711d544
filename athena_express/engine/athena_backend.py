"""Amazon Athena query engine backend.

This module provides the Athena implementation of the QueryEngine
interface:
- Async operations using aioboto3
- Support for custom endpoints and named profiles
- Translation of botocore errors into transient or fatal engine errors
"""

from typing import Any

import aioboto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
    UnknownEndpointError,
)

from athena_express.engine.backend import QueryEngine
from athena_express.engine.errors import classify_engine_error
from athena_express.exceptions import EngineError
from athena_express.logging_config import get_logger
from athena_express.query.models import ExecutionRequest, ExecutionStatus

logger = get_logger(__name__)

_NETWORK_ERRORS = (
    EndpointConnectionError,
    ConnectionClosedError,
    ConnectTimeoutError,
    ReadTimeoutError,
)


def translate_botocore_error(error: Exception, operation: str) -> EngineError:
    """Map a botocore exception onto the engine error taxonomy.

    Args:
        error: Exception raised by the Athena client
        operation: Athena API operation name

    Returns:
        TransientEngineError or FatalEngineError
    """
    if isinstance(error, ClientError):
        details = error.response.get("Error", {})
        code = details.get("Code", "Unknown")
        message = details.get("Message", str(error))
    elif isinstance(error, _NETWORK_ERRORS):
        code, message = "NetworkingError", str(error)
    elif isinstance(error, UnknownEndpointError):
        code, message = "UnknownEndpoint", str(error)
    else:
        code, message = type(error).__name__, str(error)
    return classify_engine_error(code, message, operation)


class AthenaBackend(QueryEngine):
    """Amazon Athena query engine.

    A client is opened per call from a shared aioboto3 session, so one
    backend can serve concurrent independent queries.

    Example:
        engine = AthenaBackend(region="eu-west-1")
        execution_id = await engine.start_query_execution(
            ExecutionRequest(sql="SELECT 1", database="default")
        )
    """

    def __init__(
        self,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        profile_name: str | None = None,
        session: aioboto3.Session | None = None,
    ) -> None:
        """Initialize Athena backend.

        Args:
            region: AWS region (default: us-east-1)
            endpoint_url: Custom Athena endpoint URL
            profile_name: Named AWS profile (optional, uses environment if not provided)
            session: Pre-built aioboto3 session shared with other backends
        """
        self.region = region
        self.endpoint_url = endpoint_url
        self._session = session or aioboto3.Session(profile_name=profile_name)

    def _get_client_kwargs(self) -> dict[str, Any]:
        """Get kwargs for creating the Athena client."""
        kwargs: dict[str, Any] = {
            "service_name": "athena",
            "region_name": self.region,
        }

        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url

        return kwargs

    async def _call(self, operation: str, method: str, **params: Any) -> dict[str, Any]:
        try:
            async with self._session.client(**self._get_client_kwargs()) as athena:
                return await getattr(athena, method)(**params)
        except (ClientError, BotoCoreError) as e:
            error = translate_botocore_error(e, operation)
            logger.debug(
                "Athena call failed",
                operation=operation,
                code=error.code,
                error=error.message,
            )
            raise error from e

    async def start_query_execution(self, request: ExecutionRequest) -> str:
        """Submit a statement via StartQueryExecution."""
        response = await self._call(
            "StartQueryExecution", "start_query_execution", **request.to_params()
        )
        return response["QueryExecutionId"]

    async def get_query_execution(self, execution_id: str) -> ExecutionStatus:
        """Fetch execution status via GetQueryExecution."""
        response = await self._call(
            "GetQueryExecution", "get_query_execution", QueryExecutionId=execution_id
        )
        return ExecutionStatus.from_response(response)

    async def get_query_results(
        self,
        execution_id: str,
        max_results: int,
        next_token: str | None = None,
    ) -> dict[str, Any]:
        """Fetch one page via GetQueryResults."""
        params: dict[str, Any] = {
            "QueryExecutionId": execution_id,
            "MaxResults": max_results,
        }
        if next_token:
            params["NextToken"] = next_token

        response = await self._call("GetQueryResults", "get_query_results", **params)
        response.pop("ResponseMetadata", None)
        return response

    async def stop_query_execution(self, execution_id: str) -> None:
        """Cancel an execution via StopQueryExecution."""
        await self._call(
            "StopQueryExecution", "stop_query_execution", QueryExecutionId=execution_id
        )
