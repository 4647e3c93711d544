"""Submission of statements to the query engine."""

import asyncio

from athena_express.engine.backend import QueryEngine
from athena_express.logging_config import get_logger
from athena_express.query.models import ExecutionRequest
from athena_express.retry.backoff import RetryPolicy, retry_transient

logger = get_logger(__name__)


class ExecutionSubmitter:
    """
    Starts query executions, retrying throttling and network failures.

    Transient errors are retried with the transient-error policy, forever
    unless the policy carries an attempt budget. Fatal errors propagate on
    the first occurrence.

    Usage:
        submitter = ExecutionSubmitter(engine, RetryPolicy.build(2.0))
        execution_id = await submitter.submit(request)
    """

    def __init__(self, engine: QueryEngine, transient_policy: RetryPolicy) -> None:
        self.engine = engine
        self.transient_policy = transient_policy

    async def submit(
        self,
        request: ExecutionRequest,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        """
        Submit a statement and return its execution handle.

        Args:
            request: Statement and execution context
            cancel_event: Optional event that abandons retry waits when set

        Returns:
            Execution handle assigned by the engine

        Raises:
            FatalEngineError: On a non-retryable remote error
            RetryLimitExceededError: If a bounded transient budget is exhausted
            QueryCancelledError: If ``cancel_event`` fires during a retry wait
        """
        execution_id = await retry_transient(
            "StartQueryExecution",
            lambda: self.engine.start_query_execution(request),
            self.transient_policy,
            cancel_event,
        )

        logger.info(
            "Query submitted",
            execution_id=execution_id,
            database=request.database,
            workgroup=request.workgroup,
        )
        return execution_id
