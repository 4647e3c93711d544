"""Resolution of the polymorphic ``query`` argument.

``AthenaExpress.query`` accepts:

- a SQL string
- a ``QueryRequest`` (or an equivalent mapping) with per-call overrides
- a 36-character string without whitespace, read as an execution id to
  resume instead of new SQL

The last rule is a heuristic: a 36-character statement with no whitespace
would be read as an execution id. Pass a ``QueryRequest`` with ``sql`` set
to force submission.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Sequence, Union

from athena_express.exceptions import InputError

EXECUTION_ID_LENGTH = 36

_KEY_ALIASES = {
    "db": "database",
    "pagination": "page_size",
    "NextToken": "next_token",
    "QueryExecutionId": "execution_id",
    "values": "parameters",
}


@dataclass(frozen=True)
class QueryOverrides:
    """Per-call settings that take precedence over the client configuration."""

    database: str | None = None
    catalog: str | None = None
    workgroup: str | None = None
    page_size: int | None = None
    next_token: str | None = None
    parameters: tuple[str, ...] = ()


@dataclass(frozen=True)
class QueryRequest:
    """Structured query argument.

    Set ``sql`` to submit a statement, or ``execution_id`` to resume one.
    """

    sql: str | None = None
    execution_id: str | None = None
    database: str | None = None
    catalog: str | None = None
    workgroup: str | None = None
    page_size: int | None = None
    next_token: str | None = None
    parameters: Sequence[Any] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "QueryRequest":
        """Build a request from a mapping, accepting the legacy key aliases."""
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = _KEY_ALIASES.get(key, key)
            if name not in known:
                raise InputError(f"Unknown query option: {key}", option=key)
            values[name] = value
        return cls(**values)


@dataclass(frozen=True)
class StatementInput:
    """Submit ``sql`` as a new execution."""

    sql: str
    overrides: QueryOverrides = field(default_factory=QueryOverrides)


@dataclass(frozen=True)
class ResumeInput:
    """Skip submission and continue with an existing execution."""

    execution_id: str
    overrides: QueryOverrides = field(default_factory=QueryOverrides)


QueryInput = Union[StatementInput, ResumeInput]


def looks_like_execution_id(text: str) -> bool:
    """36 characters without whitespace, the shape of an Athena execution id."""
    return len(text) == EXECUTION_ID_LENGTH and not any(char.isspace() for char in text)


def _build_overrides(request: QueryRequest) -> QueryOverrides:
    page_size = request.page_size
    if page_size is not None:
        if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
            raise InputError(f"page_size must be a positive integer, got {page_size!r}")

    if isinstance(request.parameters, (str, bytes)):
        raise InputError("parameters must be a sequence of values, not a string")

    return QueryOverrides(
        database=request.database,
        catalog=request.catalog,
        workgroup=request.workgroup,
        page_size=page_size,
        next_token=request.next_token,
        parameters=tuple(str(value) for value in request.parameters or ()),
    )


def parse_query_input(query: Any) -> QueryInput:
    """
    Resolve the ``query`` argument into a statement or a resume request.

    Args:
        query: SQL string, execution id, QueryRequest or mapping

    Returns:
        StatementInput or ResumeInput

    Raises:
        InputError: If the query is missing, empty or of an unsupported type
    """
    if query is None:
        raise InputError("SQL query is missing")

    if isinstance(query, str):
        text = query.strip()
        if not text:
            raise InputError("SQL query is missing")
        if looks_like_execution_id(text):
            return ResumeInput(execution_id=text)
        return StatementInput(sql=text)

    if isinstance(query, Mapping):
        query = QueryRequest.from_mapping(query)

    if not isinstance(query, QueryRequest):
        raise InputError(
            f"Query must be a string, a mapping or a QueryRequest, got {type(query).__name__}"
        )

    overrides = _build_overrides(query)

    if query.execution_id:
        if not isinstance(query.execution_id, str):
            raise InputError("execution_id must be a string")
        return ResumeInput(execution_id=query.execution_id, overrides=overrides)

    if not isinstance(query.sql, str) or not query.sql.strip():
        raise InputError("SQL query is missing")

    return StatementInput(sql=query.sql.strip(), overrides=overrides)
