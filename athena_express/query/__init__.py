"""Query lifecycle models and input resolution.

The submitter and poller live in ``athena_express.query.submitter`` and
``athena_express.query.poller``; they import the engine backends, which in
turn import these models, so they are not re-exported here.
"""

from athena_express.query.inputs import (
    QueryRequest,
    ResumeInput,
    StatementInput,
    parse_query_input,
)
from athena_express.query.models import (
    ColumnManifest,
    ExecutionRequest,
    ExecutionState,
    ExecutionStatus,
    QueryStatistics,
    ResultEnvelope,
    ResultPage,
    StatementKind,
)

__all__ = [
    "ColumnManifest",
    "ExecutionRequest",
    "ExecutionState",
    "ExecutionStatus",
    "QueryRequest",
    "QueryStatistics",
    "ResultEnvelope",
    "ResultPage",
    "ResumeInput",
    "StatementInput",
    "StatementKind",
    "parse_query_input",
]
