"""Tests for the AthenaExpress orchestrator."""

from unittest.mock import AsyncMock, patch

import pytest

from athena_express import AthenaExpress, QueryConfig, QueryRequest
from athena_express.config import Settings
from athena_express.engine import MockQueryEngine
from athena_express.exceptions import (
    ConfigurationError,
    FatalEngineError,
    InputError,
    ObjectStoreError,
    QueryExecutionError,
    QueryFailedError,
)
from athena_express.query.models import (
    COST_FOR_MINIMUM_MB,
    ExecutionState,
    ExecutionStatus,
    StatementKind,
)
from athena_express.storage import MockObjectStore

EXECUTION_ID = "0f7c2d2e-9a3b-4c5d-8e6f-7a8b9c0d1e2f"


def succeeded(kind=StatementKind.DML, output=f"s3://results/{EXECUTION_ID}.csv", scanned=100000):
    return ExecutionStatus(
        execution_id=EXECUTION_ID,
        state=ExecutionState.SUCCEEDED,
        raw_state="SUCCEEDED",
        output_location=output,
        statement_kind=kind,
        statistics={"DataScannedInBytes": scanned, "EngineExecutionTimeInMillis": 321},
    )


def result_set(columns, rows=()):
    header = {"Data": [{"VarCharValue": name} for name, _ in columns]}
    data = [{"Data": [{"VarCharValue": value} for value in row]} for row in rows]
    return {
        "ResultSet": {
            "ResultSetMetadata": {"ColumnInfo": [{"Name": n, "Type": t} for n, t in columns]},
            "Rows": [header, *data],
        }
    }


@pytest.fixture
def engine():
    return MockQueryEngine(execution_id=EXECUTION_ID)


@pytest.fixture
def store():
    return MockObjectStore()


def make_client(engine, store, **options):
    options.setdefault("poll_interval", 0)
    options.setdefault("transient_retry_delay", 0)
    return AthenaExpress(engine, store, QueryConfig(**options))


class TestConstruction:
    """Tests for client construction."""

    def test_missing_engine(self, store):
        with pytest.raises(ConfigurationError, match="Query engine not present"):
            AthenaExpress(None, store)

    def test_missing_store(self, engine):
        with pytest.raises(ConfigurationError):
            AthenaExpress(engine, object())

    def test_configuration_error_is_a_type_error(self, store):
        with pytest.raises(TypeError):
            AthenaExpress("athena", store)

    def test_invalid_config(self):
        with pytest.raises(ConfigurationError):
            QueryConfig(output_location="results-bucket")
        with pytest.raises(ConfigurationError):
            QueryConfig(poll_interval=-1)

    def test_from_settings(self):
        settings = Settings(aws_region="eu-west-1", athena_database="sales", get_stats=True)
        with patch("athena_express.client.aioboto3.Session") as session:
            client = AthenaExpress.from_settings(settings)
        session.assert_called_once_with(profile_name=None)
        assert client.engine.region == "eu-west-1"
        assert client.object_store.region == "eu-west-1"
        assert client.config.database == "sales"
        assert client.config.get_stats is True


class TestQuery:
    """Tests for full-result queries."""

    @pytest.mark.asyncio
    async def test_show_tables(self, engine, store):
        engine.script_status(succeeded(StatementKind.UTILITY, f"s3://results/{EXECUTION_ID}.txt"))
        store.add_object("results", f"{EXECUTION_ID}.txt", "table_name\n")

        result = await make_client(engine, store).query("SHOW TABLES")

        assert result.to_dict() == {"Items": [{"row": "table_name"}], "QueryExecutionId": EXECUTION_ID}
        assert engine.result_calls == []

    @pytest.mark.asyncio
    async def test_select_decodes_rows(self, engine, store):
        engine.script_status(succeeded())
        engine.set_results(result_set([("yearmonth_field", "varchar"), ("total", "bigint")]))
        store.add_object(
            "results",
            f"{EXECUTION_ID}.csv",
            '"yearmonth_field","total"\n"202101","12"\n"202102",""\n',
        )

        result = await make_client(engine, store).query("SELECT yearmonth_field, total FROM t")

        assert result.items == [{"yearmonth_field": "202101", "total": 12}, {"yearmonth_field": "202102"}]
        assert engine.submissions[0].sql == "SELECT yearmonth_field, total FROM t"
        assert engine.submissions[0].database == "default"

    @pytest.mark.asyncio
    async def test_statistics(self, engine, store):
        engine.script_status(succeeded())
        engine.set_results(result_set([("a", "integer")]))
        store.add_object("results", f"{EXECUTION_ID}.csv", '"a"\n"1"\n')

        result = await make_client(engine, store, get_stats=True).query("SELECT a FROM t")
        body = result.to_dict()

        assert body["DataScannedInMB"] == 0
        assert body["QueryCostInUSD"] == COST_FOR_MINIMUM_MB
        assert body["Count"] == 1
        assert body["EngineExecutionTimeInMillis"] == 321
        assert body["S3Location"] == f"s3://results/{EXECUTION_ID}.csv"

    @pytest.mark.asyncio
    async def test_raw_output(self, engine, store):
        engine.script_status(succeeded())
        store.add_object("results", f"{EXECUTION_ID}.csv", '"a"\n"1"\n')

        result = await make_client(engine, store, format_json=False).query("SELECT a FROM t")

        assert result.items == ['"a"', '"1"']
        assert engine.result_calls == []

    @pytest.mark.asyncio
    async def test_overrides_and_parameters(self, engine, store):
        engine.script_status(succeeded(StatementKind.DDL, output="s3://results/exec.metadata"))
        client = make_client(engine, store, output_location="s3://results/")

        await client.query(
            QueryRequest(sql="SELECT ?", database="sales", workgroup="wg", parameters=[7])
        )

        request = engine.submissions[0]
        assert request.database == "sales"
        assert request.workgroup == "wg"
        assert request.parameters == ("7",)
        assert request.output_location == "s3://results/"

    @pytest.mark.asyncio
    async def test_no_result_file(self, engine, store):
        engine.script_status(succeeded(StatementKind.DDL, output="s3://results/exec.metadata"))

        result = await make_client(engine, store).query("CREATE TABLE x (a int)")

        assert result.items is None
        assert store.reads == []

    @pytest.mark.asyncio
    async def test_skip_results(self, engine, store):
        engine.script_status(succeeded())

        result = await make_client(engine, store, skip_results=True).query("SELECT 1")

        assert result.to_dict() == {"QueryExecutionId": EXECUTION_ID}
        assert engine.result_calls == []
        assert store.reads == []

    @pytest.mark.asyncio
    async def test_no_wait(self, engine, store):
        result = await make_client(engine, store, wait_for_results=False).query("SELECT 1")

        assert result.to_dict() == {"QueryExecutionId": EXECUTION_ID}
        assert engine.status_calls == []

    @pytest.mark.asyncio
    async def test_resume_skips_submission(self, engine, store):
        engine.script_status(succeeded(StatementKind.UTILITY, f"s3://results/{EXECUTION_ID}.txt"))
        store.add_object("results", f"{EXECUTION_ID}.txt", "a\nb\n")

        result = await make_client(engine, store).query(EXECUTION_ID)

        assert engine.submissions == []
        assert result.items == [{"row": "a"}, {"row": "b"}]

    @pytest.mark.asyncio
    async def test_missing_query(self, engine, store):
        with pytest.raises(InputError):
            await make_client(engine, store).query(None)
        assert engine.submissions == []


class TestPagination:
    """Tests for paginated DML results."""

    @pytest.mark.asyncio
    async def test_first_page_skips_header(self, engine, store):
        engine.script_status(succeeded())
        first = result_set([("id", "integer")], [("1",), ("2",)])
        first["NextToken"] = "token-2"
        engine.set_results(first)

        result = await make_client(engine, store, page_size=2).query("SELECT id FROM t")

        assert result.items == [{"id": 1}, {"id": 2}]
        assert result.next_token == "token-2"
        assert engine.result_calls[-1]["max_results"] == 3
        assert store.reads == []

    @pytest.mark.asyncio
    async def test_continuation_page(self, engine, store):
        engine.script_status(succeeded())
        engine.set_results(result_set([("id", "integer")]))
        engine.set_results({"ResultSet": {"Rows": [{"Data": [{"VarCharValue": "3"}]}]}}, next_token="token-2")

        result = await make_client(engine, store).query(
            {"QueryExecutionId": EXECUTION_ID, "pagination": 2, "NextToken": "token-2"}
        )

        assert result.items == [{"id": 3}]
        assert result.next_token is None
        assert engine.result_calls[-1] == {
            "execution_id": EXECUTION_ID,
            "max_results": 2,
            "next_token": "token-2",
        }

    @pytest.mark.asyncio
    async def test_listing_ignores_page_size(self, engine, store):
        engine.script_status(succeeded(StatementKind.UTILITY, f"s3://results/{EXECUTION_ID}.txt"))
        store.add_object("results", f"{EXECUTION_ID}.txt", "t1\n")

        result = await make_client(engine, store, page_size=5).query("SHOW TABLES")

        assert result.items == [{"row": "t1"}]
        assert engine.result_calls == []

    @pytest.mark.asyncio
    async def test_iter_pages_reuses_manifest(self, engine, store):
        engine.script_status(succeeded())
        first = result_set([("id", "integer")], [("1",)])
        first["NextToken"] = "token-2"
        engine.set_results(first)
        engine.set_results({"ResultSet": {"Rows": [{"Data": [{"VarCharValue": "2"}]}]}}, next_token="token-2")

        client = make_client(engine, store)
        pages = [page async for page in client.iter_pages("SELECT id FROM t", page_size=1)]

        assert [page.items for page in pages] == [[{"id": 1}], [{"id": 2}]]
        assert len(engine.submissions) == 1
        manifest_calls = [call for call in engine.result_calls if call["max_results"] == 1 and call["next_token"] is None]
        assert len(manifest_calls) == 1

    @pytest.mark.asyncio
    async def test_iter_pages_requires_page_size(self, engine, store):
        with pytest.raises(InputError):
            async for _ in make_client(engine, store).iter_pages("SELECT 1"):
                pass


class TestErrors:
    """Tests for error propagation."""

    @pytest.mark.asyncio
    async def test_query_failed_is_unmodified(self, engine, store):
        engine.script_status(
            ExecutionStatus(
                execution_id=EXECUTION_ID,
                state=ExecutionState.FAILED,
                raw_state="FAILED",
                reason="Forced Error",
            )
        )
        with pytest.raises(QueryFailedError) as exc_info:
            await make_client(engine, store).query("SELECT 1")
        assert str(exc_info.value) == "Forced Error"

    @pytest.mark.asyncio
    async def test_fatal_engine_error_is_unmodified(self, engine, store):
        engine.script_start(MockQueryEngine.fail_with("AccessDeniedException", "denied"))
        with pytest.raises(FatalEngineError, match="denied"):
            await make_client(engine, store).query("SELECT 1")

    @pytest.mark.asyncio
    async def test_missing_result_object(self, engine, store):
        engine.script_status(succeeded(StatementKind.UTILITY, f"s3://results/{EXECUTION_ID}.txt"))
        with pytest.raises(ObjectStoreError):
            await make_client(engine, store).query("SHOW TABLES")

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self, engine, store):
        engine.start_query_execution = AsyncMock(side_effect=RuntimeError("boom"))
        with pytest.raises(QueryExecutionError, match="boom") as exc_info:
            await make_client(engine, store).query("SELECT 1")
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.context["query"] == "SELECT 1"


class TestCancel:
    """Tests for cancellation."""

    @pytest.mark.asyncio
    async def test_cancel(self, engine, store):
        await make_client(engine, store).cancel(EXECUTION_ID)
        assert engine.stopped == [EXECUTION_ID]
