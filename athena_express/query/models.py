"""Query execution models and result types."""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

COST_PER_MB = 0.000004768  # $5 per TB scanned
BYTES_IN_MB = 1048576
MINIMUM_BILLED_MB = 10
COST_FOR_MINIMUM_MB = COST_PER_MB * MINIMUM_BILLED_MB

RESULT_FILE_SUFFIXES = (".csv", ".txt")


class ExecutionState(str, Enum):
    """Athena query execution states."""

    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: str | None) -> "ExecutionState":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class StatementKind(str, Enum):
    """Classification of a submitted statement."""

    UTILITY = "UTILITY"
    DDL = "DDL"
    DML = "DML"

    @classmethod
    def parse(cls, value: str | None) -> "StatementKind":
        try:
            return cls(value)
        except ValueError:
            return cls.DML

    @property
    def is_listing(self) -> bool:
        """UTILITY and DDL results are key/value listings, not columnar rows."""
        return self in (StatementKind.UTILITY, StatementKind.DDL)


@dataclass(frozen=True)
class ExecutionRequest:
    """Everything needed to start one query execution.

    Attributes:
        sql: Statement text
        database: Target database
        catalog: Optional data catalog
        output_location: S3 prefix for the result artifact (workgroup default when None)
        encryption: Optional Athena EncryptionConfiguration
        workgroup: Optional workgroup
        parameters: Positional execution parameters for ``?`` placeholders
    """

    sql: str
    database: str
    catalog: str | None = None
    output_location: str | None = None
    encryption: Mapping[str, str] | None = None
    workgroup: str | None = None
    parameters: tuple[str, ...] = ()

    def to_params(self) -> dict[str, Any]:
        """Build StartQueryExecution keyword arguments."""
        context: dict[str, Any] = {"Database": self.database}
        if self.catalog:
            context["Catalog"] = self.catalog

        params: dict[str, Any] = {
            "QueryString": self.sql,
            "QueryExecutionContext": context,
        }

        result_configuration: dict[str, Any] = {}
        if self.output_location:
            result_configuration["OutputLocation"] = self.output_location
        if self.encryption:
            result_configuration["EncryptionConfiguration"] = dict(self.encryption)
        if result_configuration:
            params["ResultConfiguration"] = result_configuration

        if self.workgroup:
            params["WorkGroup"] = self.workgroup
        if self.parameters:
            params["ExecutionParameters"] = list(self.parameters)

        return params


@dataclass(frozen=True)
class ExecutionStatus:
    """Snapshot of a GetQueryExecution response."""

    execution_id: str
    state: ExecutionState
    raw_state: str | None = None
    reason: str | None = None
    output_location: str | None = None
    statement_kind: StatementKind = StatementKind.DML
    statistics: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_response(cls, response: Mapping[str, Any]) -> "ExecutionStatus":
        """Build a status from a GetQueryExecution response."""
        execution = response["QueryExecution"]
        status = execution.get("Status", {})
        raw_state = status.get("State")
        return cls(
            execution_id=execution["QueryExecutionId"],
            state=ExecutionState.parse(raw_state),
            raw_state=raw_state,
            reason=status.get("StateChangeReason"),
            output_location=execution.get("ResultConfiguration", {}).get("OutputLocation"),
            statement_kind=StatementKind.parse(execution.get("StatementType")),
            statistics=dict(execution.get("Statistics", {})),
        )

    @property
    def has_result_file(self) -> bool:
        """Whether the output location points at a decodable CSV/TXT artifact."""
        return bool(self.output_location) and self.output_location.endswith(
            RESULT_FILE_SUFFIXES
        )


class ColumnManifest(Mapping[str, str]):
    """Ordered, read-only mapping of column name to declared Athena type."""

    def __init__(self, columns: Mapping[str, str] | None = None) -> None:
        self._columns = MappingProxyType(dict(columns or {}))

    @classmethod
    def from_result_set(cls, response: Mapping[str, Any]) -> "ColumnManifest":
        """Build a manifest from a GetQueryResults response."""
        column_info = (
            response.get("ResultSet", {}).get("ResultSetMetadata", {}).get("ColumnInfo", [])
        )
        return cls({column["Name"]: column["Type"] for column in column_info})

    @property
    def names(self) -> list[str]:
        return list(self._columns)

    def __getitem__(self, key: str) -> str:
        return self._columns[key]

    def __iter__(self):
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __repr__(self) -> str:
        return f"ColumnManifest({dict(self._columns)!r})"


@dataclass
class ResultPage:
    """One batch of decoded records and the cursor for the next batch."""

    items: list[Any]
    next_token: str | None = None


@dataclass
class QueryStatistics:
    """Cost and size figures derived from Athena's execution statistics."""

    data_scanned_in_mb: int
    query_cost_in_usd: float
    raw: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "QueryStatistics":
        """Compute scanned megabytes and cost with the 10 MB minimum charge."""
        # half a megabyte rounds up
        data_in_mb = int(
            (Decimal(raw.get("DataScannedInBytes", 0)) / BYTES_IN_MB).quantize(
                Decimal(1), rounding=ROUND_HALF_UP
            )
        )
        cost = (
            data_in_mb * COST_PER_MB
            if data_in_mb > MINIMUM_BILLED_MB
            else COST_FOR_MINIMUM_MB
        )
        return cls(data_scanned_in_mb=data_in_mb, query_cost_in_usd=cost, raw=dict(raw))


@dataclass
class ResultEnvelope:
    """
    Final result of one ``AthenaExpress.query`` call.

    Attributes:
        query_execution_id: Execution handle, always present
        items: Decoded records, raw lines or a raw page; None when results were skipped
        next_token: Cursor for the next page, only mid-pagination
        statistics: Only when statistics were requested
        s3_location: Result artifact location, only with statistics
    """

    query_execution_id: str
    items: Any = None
    next_token: str | None = None
    statistics: QueryStatistics | None = None
    s3_location: str | None = None

    @property
    def count(self) -> int | None:
        if self.statistics is None or not isinstance(self.items, list):
            return None
        return len(self.items)

    def to_dict(self) -> dict[str, Any]:
        """
        Render the caller-facing envelope.

        Keys are present only when their condition holds.

        Returns:
            Dictionary with Items, QueryExecutionId, NextToken and statistics keys
        """
        result: dict[str, Any] = {}

        if self.items is not None:
            result["Items"] = self.items

        if self.statistics is not None:
            result["DataScannedInMB"] = self.statistics.data_scanned_in_mb
            result["QueryCostInUSD"] = self.statistics.query_cost_in_usd
            if self.count is not None:
                result["Count"] = self.count
            result.update(self.statistics.raw)
            if self.s3_location:
                result["S3Location"] = self.s3_location

        result["QueryExecutionId"] = self.query_execution_id

        if self.next_token:
            result["NextToken"] = self.next_token

        return result
