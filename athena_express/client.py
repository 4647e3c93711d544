"""AthenaExpress: run a statement on Athena and return decoded results.

One ``query`` call drives the whole lifecycle:

1. Resolve the argument into new SQL or an execution id to resume
2. Submit the statement (skipped when resuming)
3. Poll until SUCCEEDED, fetching the column manifest for DML results
4. Fetch and decode results, either the whole S3 artifact or one page
5. Attach statistics when requested

Usage:
    client = AthenaExpress.from_settings()
    result = await client.query("SELECT * FROM elb_logs LIMIT 10")
    print(result.to_dict()["Items"])
"""

import asyncio
from dataclasses import replace
from typing import Any, AsyncIterator

import aioboto3

from athena_express.client_config import QueryConfig
from athena_express.config import Settings, get_settings
from athena_express.decoding import ResultDecoder, TypeCoercer
from athena_express.engine import QueryEngine, get_query_engine
from athena_express.exceptions import (
    AthenaExpressError,
    ConfigurationError,
    InputError,
    QueryExecutionError,
    ResultDecodingError,
)
from athena_express.logging_config import get_logger, log_error, log_operation
from athena_express.query.inputs import (
    QueryInput,
    ResumeInput,
    StatementInput,
    parse_query_input,
)
from athena_express.query.models import (
    ColumnManifest,
    ExecutionRequest,
    ExecutionStatus,
    QueryStatistics,
    ResultEnvelope,
    ResultPage,
    StatementKind,
)
from athena_express.query.poller import ExecutionPoller
from athena_express.query.submitter import ExecutionSubmitter
from athena_express.retry.backoff import retry_transient
from athena_express.storage import ObjectStore, get_object_store, parse_s3_uri

logger = get_logger(__name__)


class AthenaExpress:
    """
    Query orchestrator.

    Holds no per-query state, so one instance can serve any number of
    concurrent ``query`` calls.

    Args:
        engine: Remote query engine
        object_store: Store holding the result artifacts
        config: Query behaviour, defaults to ``QueryConfig()``
    """

    def __init__(
        self,
        engine: QueryEngine,
        object_store: ObjectStore,
        config: QueryConfig | None = None,
    ) -> None:
        if not isinstance(engine, QueryEngine):
            raise ConfigurationError("Query engine not present or incorrect in the constructor")
        if not isinstance(object_store, ObjectStore):
            raise ConfigurationError("Object store not present or incorrect in the constructor")
        if config is not None and not isinstance(config, QueryConfig):
            raise ConfigurationError("config must be a QueryConfig")

        self.engine = engine
        self.object_store = object_store
        self.config = config or QueryConfig()

        self._submitter = ExecutionSubmitter(engine, self.config.transient_policy)
        self._poller = ExecutionPoller(
            engine,
            self.config.poll_policy,
            self.config.transient_policy,
            cancelled_is_failure=self.config.cancelled_is_failure,
        )
        self._decoder = ResultDecoder(
            TypeCoercer(use_utc_dates=self.config.use_utc_dates),
            ignore_empty=self.config.ignore_empty,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "AthenaExpress":
        """Build a client whose Athena and S3 backends share one AWS session."""
        settings = settings or get_settings()
        session = aioboto3.Session(profile_name=settings.aws_profile)

        engine = get_query_engine(
            "athena",
            {
                "region": settings.aws_region,
                "endpoint_url": settings.athena_endpoint_url,
                "session": session,
            },
        )
        object_store = get_object_store(
            "s3",
            {
                "region": settings.aws_region,
                "endpoint_url": settings.s3_endpoint_url,
                "session": session,
            },
        )
        return cls(engine, object_store, QueryConfig.from_settings(settings))

    async def query(
        self,
        query: Any,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> ResultEnvelope:
        """
        Execute a statement, or resume an execution, and return its results.

        Args:
            query: SQL string, execution id, QueryRequest or mapping
            cancel_event: Optional event that abandons pending waits when set

        Returns:
            ResultEnvelope; call ``to_dict()`` for the caller-facing shape

        Raises:
            InputError: If the query argument is missing or malformed
            QueryFailedError: If Athena reports FAILED
            FatalEngineError: On a non-retryable remote error
            QueryExecutionError: Wraps any unexpected failure
        """
        query_input = parse_query_input(query)
        return await self._execute(query_input, cancel_event)

    async def iter_pages(
        self,
        query: Any,
        page_size: int | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[ResultEnvelope]:
        """
        Yield one envelope per results page until the engine stops
        returning a NextToken.

        Pages after the first resume the same execution and reuse its
        column manifest.

        Raises:
            InputError: If no page size is configured for this call
        """
        query_input = parse_query_input(query)
        overrides = query_input.overrides
        page_size = page_size or overrides.page_size or self.config.page_size
        if page_size is None:
            raise InputError("page_size is required to iterate over pages")

        overrides = replace(overrides, page_size=page_size)
        query_input = replace(query_input, overrides=overrides)

        manifests: dict[str, ColumnManifest | None] = {}
        envelope = await self._execute(query_input, cancel_event, manifests)
        yield envelope

        while envelope.next_token:
            resume = ResumeInput(
                execution_id=envelope.query_execution_id,
                overrides=replace(overrides, next_token=envelope.next_token),
            )
            envelope = await self._execute(resume, cancel_event, manifests)
            yield envelope

    async def cancel(self, execution_id: str) -> None:
        """Ask Athena to stop an execution."""
        await retry_transient(
            "StopQueryExecution",
            lambda: self.engine.stop_query_execution(execution_id),
            self.config.transient_policy,
            execution_id=execution_id,
        )
        log_operation(logger, "query_cancelled", execution_id=execution_id)

    async def _execute(
        self,
        query_input: QueryInput,
        cancel_event: asyncio.Event | None,
        manifests: dict[str, ColumnManifest | None] | None = None,
    ) -> ResultEnvelope:
        sql = query_input.sql if isinstance(query_input, StatementInput) else None
        try:
            return await self._run(query_input, cancel_event, manifests)
        except AthenaExpressError as e:
            log_error(logger, e, "query", query=sql)
            raise
        except Exception as e:
            log_error(logger, e, "query", query=sql)
            raise QueryExecutionError(str(e), query=sql) from e

    async def _run(
        self,
        query_input: QueryInput,
        cancel_event: asyncio.Event | None,
        manifests: dict[str, ColumnManifest | None] | None,
    ) -> ResultEnvelope:
        config = self.config
        overrides = query_input.overrides

        if isinstance(query_input, ResumeInput):
            execution_id = query_input.execution_id
            log_operation(logger, "query_resumed", execution_id=execution_id)
        else:
            execution_id = await self._submitter.submit(
                self._build_request(query_input), cancel_event
            )

        envelope = ResultEnvelope(query_execution_id=execution_id)
        if not config.wait_for_results:
            return envelope

        cached = manifests is not None and execution_id in manifests
        outcome = await self._poller.wait_for_completion(
            execution_id,
            fetch_manifest=config.format_json and not config.skip_results and not cached,
            cancel_event=cancel_event,
        )
        manifest = manifests[execution_id] if cached else outcome.manifest
        if manifests is not None:
            manifests[execution_id] = manifest

        status = outcome.status
        if not config.skip_results and status.has_result_file:
            page = await self._fetch_results(
                status,
                manifest,
                page_size=overrides.page_size or config.page_size,
                next_token=overrides.next_token,
                cancel_event=cancel_event,
            )
            envelope.items = page.items
            envelope.next_token = page.next_token

        if config.get_stats:
            envelope.statistics = QueryStatistics.from_raw(status.statistics)
            envelope.s3_location = status.output_location

        log_operation(
            logger,
            "query_completed",
            execution_id=execution_id,
            statement_kind=status.statement_kind.value,
            polls=outcome.polls,
            items=len(envelope.items) if isinstance(envelope.items, list) else None,
        )
        return envelope

    def _build_request(self, statement: StatementInput) -> ExecutionRequest:
        overrides = statement.overrides
        return ExecutionRequest(
            sql=statement.sql,
            database=overrides.database or self.config.database,
            catalog=overrides.catalog or self.config.catalog,
            output_location=self.config.output_location,
            encryption=self.config.encryption,
            workgroup=overrides.workgroup or self.config.workgroup,
            parameters=overrides.parameters,
        )

    async def _fetch_results(
        self,
        status: ExecutionStatus,
        manifest: ColumnManifest | None,
        page_size: int | None,
        next_token: str | None,
        cancel_event: asyncio.Event | None,
    ) -> ResultPage:
        # pagination goes through GetQueryResults and only applies to DML
        if page_size and status.statement_kind is StatementKind.DML:
            return await self._fetch_page(status, manifest, page_size, next_token, cancel_event)

        bucket, key = parse_s3_uri(status.output_location)
        lines = self.object_store.iter_lines(bucket, key)

        if not self.config.format_json:
            return ResultPage(items=await self._decoder.decode_raw(lines))
        if status.statement_kind.is_listing:
            return ResultPage(items=await self._decoder.decode_listing(lines))
        return ResultPage(
            items=await self._decoder.decode_rows(lines, self._require_manifest(manifest))
        )

    async def _fetch_page(
        self,
        status: ExecutionStatus,
        manifest: ColumnManifest | None,
        page_size: int,
        next_token: str | None,
        cancel_event: asyncio.Event | None,
    ) -> ResultPage:
        first_page = next_token is None
        # the first page repeats the header row, so ask for one extra
        max_results = page_size + 1 if first_page else page_size

        response = await retry_transient(
            "GetQueryResults",
            lambda: self.engine.get_query_results(
                status.execution_id, max_results=max_results, next_token=next_token
            ),
            self.config.transient_policy,
            cancel_event,
            status.execution_id,
        )

        if not self.config.format_json:
            return ResultPage(items=response, next_token=response.get("NextToken"))

        return self._decoder.decode_page(
            response, self._require_manifest(manifest), skip_header=first_page
        )

    @staticmethod
    def _require_manifest(manifest: ColumnManifest | None) -> ColumnManifest:
        if manifest is None:
            raise ResultDecodingError("Column manifest is required to decode DML results")
        return manifest
