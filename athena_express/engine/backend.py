"""Query engine interface for athena-express.

This module provides the abstract interface over the remote query engine
with an Athena implementation (``athena_backend``) and an in-memory mock.

Key Design Principles:
- All operations are async for consistent API
- Implementations raise only TransientEngineError or FatalEngineError
- Implementations hold no per-query state, so one instance may serve
  concurrent independent query lifecycles
"""

from abc import ABC, abstractmethod
from collections import deque
from typing import Any

from athena_express.engine.errors import classify_engine_error
from athena_express.exceptions import EngineError, FatalEngineError
from athena_express.query.models import ExecutionRequest, ExecutionStatus


class QueryEngine(ABC):
    """Abstract base class for remote query engines."""

    @abstractmethod
    async def start_query_execution(self, request: ExecutionRequest) -> str:
        """Submit a statement for asynchronous execution.

        Args:
            request: Statement and execution context

        Returns:
            Execution handle assigned by the engine

        Raises:
            TransientEngineError: On throttling or connectivity failures
            FatalEngineError: On any other remote error
        """
        pass

    @abstractmethod
    async def get_query_execution(self, execution_id: str) -> ExecutionStatus:
        """Fetch the current status of an execution.

        Args:
            execution_id: Execution handle

        Returns:
            ExecutionStatus snapshot

        Raises:
            TransientEngineError: On throttling or connectivity failures
            FatalEngineError: On any other remote error
        """
        pass

    @abstractmethod
    async def get_query_results(
        self,
        execution_id: str,
        max_results: int,
        next_token: str | None = None,
    ) -> dict[str, Any]:
        """Fetch one page of results in the engine's GetQueryResults shape.

        Args:
            execution_id: Execution handle
            max_results: Maximum number of rows in the page (header row included)
            next_token: Continuation token from the previous page

        Returns:
            Response with ``ResultSet.Rows``, ``ResultSet.ResultSetMetadata``
            and an optional ``NextToken``

        Raises:
            TransientEngineError: On throttling or connectivity failures
            FatalEngineError: On any other remote error
        """
        pass

    @abstractmethod
    async def stop_query_execution(self, execution_id: str) -> None:
        """Ask the engine to cancel a running execution.

        Raises:
            TransientEngineError: On throttling or connectivity failures
            FatalEngineError: On any other remote error
        """
        pass


class MockQueryEngine(QueryEngine):
    """In-memory query engine for testing and development.

    Responses are scripted per call type and consumed in order. A scripted
    ``EngineError`` (or an error code string wrapped by ``fail_with``) is
    raised instead of returned. The last status response is repeated once
    the script runs out.
    """

    def __init__(self, execution_id: str = "mock-execution-id") -> None:
        """Initialize mock engine."""
        self.execution_id = execution_id
        self.submissions: list[ExecutionRequest] = []
        self.status_calls: list[str] = []
        self.result_calls: list[dict[str, Any]] = []
        self.stopped: list[str] = []
        self._start_script: deque[Any] = deque()
        self._status_script: deque[Any] = deque()
        self._last_status: Any = None
        self._results: dict[str | None, Any] = {}

    @staticmethod
    def fail_with(code: str, message: str = "mock failure") -> EngineError:
        """Build the engine error a real backend would raise for ``code``."""
        return classify_engine_error(code, message)

    def script_start(self, *outcomes: Any) -> None:
        """Queue StartQueryExecution outcomes (execution ids or errors)."""
        self._start_script.extend(outcomes)

    def script_status(self, *outcomes: Any) -> None:
        """Queue GetQueryExecution outcomes (statuses, dicts or errors)."""
        self._status_script.extend(outcomes)

    def set_results(self, response: Any, next_token: str | None = None) -> None:
        """Register the GetQueryResults response for a continuation token."""
        self._results[next_token] = response

    async def start_query_execution(self, request: ExecutionRequest) -> str:
        """Record the submission and return the next scripted outcome."""
        self.submissions.append(request)
        outcome = self._start_script.popleft() if self._start_script else self.execution_id
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def get_query_execution(self, execution_id: str) -> ExecutionStatus:
        """Return the next scripted status for ``execution_id``."""
        self.status_calls.append(execution_id)
        if self._status_script:
            outcome = self._status_script.popleft()
        elif self._last_status is not None:
            outcome = self._last_status
        else:
            raise FatalEngineError(
                "InvalidRequestException",
                f"QueryExecution {execution_id} was not found",
                "GetQueryExecution",
            )

        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, dict):
            outcome = ExecutionStatus.from_response(outcome)
        self._last_status = outcome
        return outcome

    async def get_query_results(
        self,
        execution_id: str,
        max_results: int,
        next_token: str | None = None,
    ) -> dict[str, Any]:
        """Return the registered page for ``next_token``."""
        self.result_calls.append(
            {"execution_id": execution_id, "max_results": max_results, "next_token": next_token}
        )
        if next_token not in self._results:
            raise FatalEngineError(
                "InvalidRequestException",
                f"Unknown NextToken: {next_token}",
                "GetQueryResults",
            )
        outcome = self._results[next_token]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def stop_query_execution(self, execution_id: str) -> None:
        """Record the cancellation."""
        self.stopped.append(execution_id)
