"""Query commands for athena-express."""

import asyncio
from pathlib import Path
from typing import Any, List, Optional

import typer

from athena_express.cli.output import (
    print_csv,
    print_dict,
    print_error,
    print_info,
    print_json,
    print_lines,
    print_success,
    print_table,
    print_warning,
)
from athena_express.client import AthenaExpress
from athena_express.config import Settings, get_settings
from athena_express.exceptions import AthenaExpressError
from athena_express.logging_config import get_logger
from athena_express.query.inputs import QueryRequest
from athena_express.query.models import ResultEnvelope

app = typer.Typer(help="Run, resume and cancel Athena queries")
logger = get_logger(__name__)


def _settings(ctx: typer.Context, **updates: Any) -> Settings:
    state = ctx.obj
    settings = state.settings if state is not None and state.settings else get_settings()
    updates = {key: value for key, value in updates.items() if value is not None}
    return settings.model_copy(update=updates)


def _output_format(ctx: typer.Context) -> str:
    return ctx.obj.output_format if ctx.obj is not None else "table"


def _display(envelope: ResultEnvelope, output_format: str) -> None:
    result = envelope.to_dict()

    if output_format == "json":
        print_json(result)
        return

    items = envelope.items
    if isinstance(items, list) and items and all(isinstance(item, dict) for item in items):
        if output_format == "csv":
            print_csv(items)
        else:
            print_table(items, title="Results")
    elif isinstance(items, list) and items:
        print_lines(items)
    elif isinstance(items, dict):
        print_json(items)
    elif items is not None:
        print_warning("Query returned no rows")

    if envelope.statistics is not None:
        stats = {
            key: value
            for key, value in result.items()
            if key not in ("Items", "NextToken")
        }
        print_dict(stats, title="Statistics")

    print_info(f"Query execution id: {envelope.query_execution_id}")
    if envelope.next_token:
        print_info(f"Next token: {envelope.next_token}")


def _run(settings: Settings, query: Any) -> ResultEnvelope:
    async def _execute() -> ResultEnvelope:
        client = AthenaExpress.from_settings(settings)
        return await client.query(query)

    return asyncio.run(_execute())


@app.command()
def run(
    ctx: typer.Context,
    sql: Optional[str] = typer.Argument(None, help="SQL statement"),
    file: Optional[Path] = typer.Option(
        None,
        "--file",
        "-f",
        help="SQL file path",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    database: Optional[str] = typer.Option(None, "--database", "-d", help="Database"),
    workgroup: Optional[str] = typer.Option(None, "--workgroup", "-w", help="Workgroup"),
    parameter: Optional[List[str]] = typer.Option(
        None, "--param", "-p", help="Execution parameter for a ? placeholder (repeatable)"
    ),
    page_size: Optional[int] = typer.Option(
        None, "--page-size", min=1, max=999, help="Fetch one page of this many rows"
    ),
    stats: bool = typer.Option(False, "--stats", help="Show data scanned and cost"),
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Wait for the query to finish"),
    raw: bool = typer.Option(False, "--raw", help="Print result lines without decoding"),
    utc_dates: bool = typer.Option(False, "--utc-dates", help="Parse dates as UTC datetimes"),
) -> None:
    """
    Run a SQL statement on Athena.

    Examples:
        athena-express query run "SELECT * FROM elb_logs LIMIT 10"

        athena-express query run --file report.sql --database sales --stats

        athena-express query run "SELECT * FROM t WHERE id = ?" --param 42

        athena-express --output json query run "SHOW TABLES"
    """
    try:
        if not sql and not file:
            print_error("Provide SQL as an argument or via --file")
            raise typer.Exit(1)

        if sql and file:
            print_error("Provide either SQL or --file, not both")
            raise typer.Exit(1)

        if file:
            print_info(f"Reading SQL from: {file}")
            query_sql = file.read_text().strip()
        else:
            query_sql = sql.strip()

        if not query_sql:
            print_error("SQL query cannot be empty")
            raise typer.Exit(1)

        settings = _settings(
            ctx,
            get_stats=stats or None,
            wait_for_results=None if wait else False,
            format_json=False if raw else None,
            use_utc_dates=utc_dates or None,
        )
        request = QueryRequest(
            sql=query_sql,
            database=database,
            workgroup=workgroup,
            page_size=page_size,
            parameters=tuple(parameter or ()),
        )

        envelope = _run(settings, request)

        if not settings.wait_for_results:
            print_success(f"Query submitted: {envelope.query_execution_id}")
            return

        _display(envelope, _output_format(ctx))

    except typer.Exit:
        raise
    except AthenaExpressError as e:
        print_error(f"Query failed: {e.message}")
        logger.debug("Query execution error", error_type=type(e).__name__)
        raise typer.Exit(1)


@app.command()
def resume(
    ctx: typer.Context,
    execution_id: str = typer.Argument(..., help="Query execution id"),
    page_size: Optional[int] = typer.Option(
        None, "--page-size", min=1, max=999, help="Fetch one page of this many rows"
    ),
    next_token: Optional[str] = typer.Option(
        None, "--next-token", help="Continue from this page token"
    ),
    stats: bool = typer.Option(False, "--stats", help="Show data scanned and cost"),
    raw: bool = typer.Option(False, "--raw", help="Print result lines without decoding"),
) -> None:
    """
    Fetch the results of an existing execution without resubmitting it.

    Examples:
        athena-express query resume 0f7c2d2e-9a3b-4c5d-8e6f-7a8b9c0d1e2f

        athena-express query resume <id> --page-size 100 --next-token <token>
    """
    try:
        settings = _settings(ctx, get_stats=stats or None, format_json=False if raw else None)
        request = QueryRequest(
            execution_id=execution_id,
            page_size=page_size,
            next_token=next_token,
        )

        envelope = _run(settings, request)
        _display(envelope, _output_format(ctx))

    except AthenaExpressError as e:
        print_error(f"Query failed: {e.message}")
        logger.debug("Query resume error", error_type=type(e).__name__)
        raise typer.Exit(1)


@app.command()
def cancel(
    ctx: typer.Context,
    execution_id: str = typer.Argument(..., help="Query execution id"),
) -> None:
    """
    Stop a running execution.

    Example:
        athena-express query cancel 0f7c2d2e-9a3b-4c5d-8e6f-7a8b9c0d1e2f
    """
    settings = _settings(ctx)

    async def _cancel() -> None:
        client = AthenaExpress.from_settings(settings)
        await client.cancel(execution_id)

    try:
        asyncio.run(_cancel())
    except AthenaExpressError as e:
        print_error(f"Cancel failed: {e.message}")
        raise typer.Exit(1)

    print_success(f"Cancellation requested: {execution_id}")
