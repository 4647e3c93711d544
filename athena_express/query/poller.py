"""Polling of query executions until they reach a terminal state."""

import asyncio
from dataclasses import dataclass

from athena_express.engine.backend import QueryEngine
from athena_express.exceptions import (
    PollLimitExceededError,
    QueryFailedError,
    RetryLimitExceededError,
    TransientEngineError,
)
from athena_express.logging_config import get_logger
from athena_express.query.models import (
    ColumnManifest,
    ExecutionState,
    ExecutionStatus,
)
from athena_express.retry.backoff import (
    RetryPolicy,
    RetryState,
    pause,
    retry_transient,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class PollOutcome:
    """
    Result of polling an execution to success.

    Attributes:
        status: Final SUCCEEDED status
        manifest: Column manifest, fetched only for structured DML results
        polls: Number of non-terminal polls performed
    """

    status: ExecutionStatus
    manifest: ColumnManifest | None
    polls: int


class ExecutionPoller:
    """
    Drives one execution from SUBMITTED to SUCCEEDED or FAILED.

    State handling:
    - SUCCEEDED: fetch the column manifest when requested, return
    - FAILED: raise QueryFailedError with the engine's reason
    - anything else (QUEUED, RUNNING, states the engine adds later): wait
      for the poll interval and poll again

    Transient errors while polling wait on the transient-error policy and
    do not count as polls.

    Args:
        engine: Remote query engine
        poll_policy: Poll interval and optional poll budget
        transient_policy: Delay and optional budget for transient errors
        cancelled_is_failure: Treat CANCELLED as a failure instead of running
    """

    def __init__(
        self,
        engine: QueryEngine,
        poll_policy: RetryPolicy,
        transient_policy: RetryPolicy,
        cancelled_is_failure: bool = False,
    ) -> None:
        self.engine = engine
        self.poll_policy = poll_policy
        self.transient_policy = transient_policy
        self.cancelled_is_failure = cancelled_is_failure

    async def wait_for_completion(
        self,
        execution_id: str,
        fetch_manifest: bool = True,
        cancel_event: asyncio.Event | None = None,
    ) -> PollOutcome:
        """
        Poll an execution until it succeeds or fails.

        Args:
            execution_id: Execution handle
            fetch_manifest: Fetch the column manifest if the statement is DML
            cancel_event: Optional event that abandons the wait when set

        Returns:
            PollOutcome with the final status and manifest

        Raises:
            QueryFailedError: If the engine reports FAILED
            FatalEngineError: On a non-retryable remote error
            PollLimitExceededError: If a bounded poll budget is exhausted
            RetryLimitExceededError: If a bounded transient budget is exhausted
            QueryCancelledError: If ``cancel_event`` fires
        """
        polls = RetryState(self.poll_policy)
        transient = RetryState(self.transient_policy)

        while True:
            try:
                status = await self.engine.get_query_execution(execution_id)
            except TransientEngineError as e:
                delay = transient.record_attempt()
                if transient.exhausted:
                    raise RetryLimitExceededError(
                        "GetQueryExecution", transient.attempt_count, e
                    ) from e
                logger.warning(
                    "Transient error polling query, retrying",
                    execution_id=execution_id,
                    code=e.code,
                    attempt=transient.attempt_count,
                    delay_seconds=delay,
                )
                await pause(delay, cancel_event, execution_id)
                continue

            # the transient budget covers consecutive failures only
            transient.reset()

            if status.state is ExecutionState.SUCCEEDED:
                manifest = None
                if fetch_manifest and not status.statement_kind.is_listing:
                    manifest = await self._fetch_manifest(execution_id, cancel_event)

                logger.info(
                    "Query succeeded",
                    execution_id=execution_id,
                    statement_kind=status.statement_kind.value,
                    polls=polls.attempt_count,
                )
                return PollOutcome(status=status, manifest=manifest, polls=polls.attempt_count)

            if status.state is ExecutionState.FAILED or (
                self.cancelled_is_failure and status.state is ExecutionState.CANCELLED
            ):
                reason = status.reason or f"Query {status.raw_state}"
                logger.info("Query failed", execution_id=execution_id, reason=reason)
                raise QueryFailedError(reason, execution_id)

            if status.state is ExecutionState.UNKNOWN:
                logger.debug(
                    "Unrecognized execution state, treating as running",
                    execution_id=execution_id,
                    state=status.raw_state,
                )

            delay = polls.record_attempt()
            if polls.exhausted:
                raise PollLimitExceededError(
                    execution_id, polls.attempt_count, status.raw_state or "UNKNOWN"
                )
            await pause(delay, cancel_event, execution_id)

    async def _fetch_manifest(
        self,
        execution_id: str,
        cancel_event: asyncio.Event | None,
    ) -> ColumnManifest:
        # one row is enough: the metadata travels with every page
        response = await retry_transient(
            "GetQueryResults",
            lambda: self.engine.get_query_results(execution_id, max_results=1),
            self.transient_policy,
            cancel_event,
            execution_id,
        )
        return ColumnManifest.from_result_set(response)
