"""Main CLI entry point for athena-express."""

import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from athena_express import __version__
from athena_express.config import Settings, get_settings
from athena_express.exceptions import AthenaExpressError, QueryFailedError
from athena_express.logging_config import get_logger, setup_logging

OUTPUT_FORMATS = ("table", "json", "csv")

app = typer.Typer(
    name="athena-express",
    help="athena-express - Run SQL on Amazon Athena and read the results",
    add_completion=True,
    rich_markup_mode="rich",
    no_args_is_help=True,
)

console = Console()
console_err = Console(stderr=True)
logger = get_logger(__name__)


class CLIState:
    """Options shared by every subcommand."""

    output_format: str = "table"
    verbose: bool = False
    settings: Optional[Settings] = None


state = CLIState()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"athena-express version: {__version__}")
        console.print(f"Python: {sys.version.split()[0]}")
        raise typer.Exit(0)


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version information and exit",
        callback=version_callback,
        is_eager=True,
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML configuration file (default: ~/.athena-express/config.yaml)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    region: Optional[str] = typer.Option(None, "--region", help="AWS region"),
    profile: Optional[str] = typer.Option(None, "--profile", help="AWS named profile"),
    output: str = typer.Option(
        "table",
        "--output",
        "-o",
        help="Output format: table, json, csv",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log every Athena call and retry",
    ),
) -> None:
    """
    athena-express - Run SQL on Amazon Athena

    Submits a statement, waits for it to finish and prints the decoded
    results Athena wrote to S3.
    """
    if output not in OUTPUT_FORMATS:
        console_err.print(f"[red]Error:[/red] Invalid output format: {output}")
        console_err.print(f"Valid formats: {', '.join(OUTPUT_FORMATS)}")
        raise typer.Exit(1)

    settings = get_settings(config_path=config, reload=config is not None)
    overrides = {"aws_region": region, "aws_profile": profile}
    if verbose:
        overrides["log_level"] = "DEBUG"
    settings = settings.model_copy(
        update={key: value for key, value in overrides.items() if value is not None}
    )

    setup_logging(settings)

    state.output_format = output
    state.verbose = verbose
    state.settings = settings
    ctx.obj = state


def handle_error(error: Exception) -> None:
    """Print an error for humans and exit with status 1."""
    if isinstance(error, QueryFailedError):
        console_err.print(f"\n[red]Query failed:[/red] {error.reason}")
        if error.context.get("execution_id"):
            console_err.print(f"Execution id: {error.context['execution_id']}")
    elif isinstance(error, AthenaExpressError):
        console_err.print(f"\n[red]Error:[/red] {error.message}")

        if state.verbose and error.context:
            console_err.print("\n[yellow]Context:[/yellow]")
            for key, value in error.context.items():
                if value is not None:
                    console_err.print(f"  {key}: {value}")
    else:
        console_err.print(f"\n[red]Unexpected Error:[/red] {error}")

        if state.verbose:
            console_err.print_exception()

    sys.exit(1)


from athena_express.cli import query  # noqa: E402

app.add_typer(query.app, name="query", help="Run, resume and cancel Athena queries")


def main_cli() -> None:
    """Console script entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(1)
    except Exception as e:
        handle_error(e)


if __name__ == "__main__":
    main_cli()
