"""CLI module for athena-express."""

from athena_express.cli.main import app, main_cli
from athena_express.cli import query

__all__ = [
    "app",
    "main_cli",
    "query",
]
