"""Tests for statement submission."""

import pytest

from athena_express.client_config import QueryConfig
from athena_express.engine import MockQueryEngine
from athena_express.exceptions import FatalEngineError, RetryLimitExceededError
from athena_express.query.models import ExecutionRequest
from athena_express.query.submitter import ExecutionSubmitter
from athena_express.retry import RetryPolicy


@pytest.fixture
def engine():
    return MockQueryEngine(execution_id="exec-1")


@pytest.fixture
def request_():
    return ExecutionRequest(sql="SELECT 1", database="default")


class TestExecutionSubmitter:
    """Tests for ExecutionSubmitter."""

    @pytest.mark.asyncio
    async def test_submit(self, engine, request_):
        submitter = ExecutionSubmitter(engine, RetryPolicy.build(0))
        assert await submitter.submit(request_) == "exec-1"
        assert engine.submissions == [request_]

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self, engine, request_):
        engine.script_start(
            MockQueryEngine.fail_with("ThrottlingException"),
            MockQueryEngine.fail_with("TooManyRequestsException"),
            MockQueryEngine.fail_with("NetworkingError"),
            "exec-2",
        )
        submitter = ExecutionSubmitter(engine, RetryPolicy.build(0))
        assert await submitter.submit(request_) == "exec-2"
        assert len(engine.submissions) == 4

    @pytest.mark.asyncio
    async def test_fatal_error_is_not_retried(self, engine, request_):
        engine.script_start(MockQueryEngine.fail_with("InvalidRequestException", "bad sql"))
        submitter = ExecutionSubmitter(engine, RetryPolicy.build(0))
        with pytest.raises(FatalEngineError) as exc_info:
            await submitter.submit(request_)
        assert exc_info.value.code == "InvalidRequestException"
        assert len(engine.submissions) == 1

    @pytest.mark.asyncio
    async def test_bounded_retries(self, engine, request_):
        engine.script_start(*[MockQueryEngine.fail_with("ThrottlingException")] * 5)
        submitter = ExecutionSubmitter(engine, RetryPolicy.build(0, max_attempts=3))
        with pytest.raises(RetryLimitExceededError):
            await submitter.submit(request_)
        assert len(engine.submissions) == 3

    @pytest.mark.asyncio
    async def test_retry_count_starts_over_for_each_submission(self, engine, request_):
        attempts = []
        policy = RetryPolicy.build(lambda attempt: attempts.append(attempt) or 0, max_attempts=2)
        submitter = ExecutionSubmitter(engine, policy)
        engine.script_start(
            MockQueryEngine.fail_with("ThrottlingException"),
            "exec-2",
            MockQueryEngine.fail_with("ThrottlingException"),
            "exec-3",
        )

        assert await submitter.submit(request_) == "exec-2"
        assert await submitter.submit(request_) == "exec-3"
        assert attempts == [1, 1]
        assert len(engine.submissions) == 4

    @pytest.mark.asyncio
    async def test_configured_retries_follow_the_first_call(self, engine, request_):
        config = QueryConfig(transient_retry_delay=0, max_transient_retries=1)
        submitter = ExecutionSubmitter(engine, config.transient_policy)
        engine.script_start(MockQueryEngine.fail_with("ThrottlingException"), "exec-2")

        assert await submitter.submit(request_) == "exec-2"

    @pytest.mark.asyncio
    async def test_zero_configured_retries(self, engine, request_):
        config = QueryConfig(transient_retry_delay=0, max_transient_retries=0)
        submitter = ExecutionSubmitter(engine, config.transient_policy)
        engine.script_start(MockQueryEngine.fail_with("ThrottlingException"), "exec-2")

        with pytest.raises(RetryLimitExceededError):
            await submitter.submit(request_)
        assert len(engine.submissions) == 1
