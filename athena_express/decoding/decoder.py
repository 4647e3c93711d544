"""Decoding of Athena result payloads into records.

Athena produces results in two shapes:

- UTILITY/DDL statements (SHOW, DESCRIBE, CREATE ...) write a ``.txt``
  listing: one entry per line, either ``key<TAB>value`` or a bare value
- DML statements write a ``.csv`` file with a header row, and the same rows
  are available page by page through GetQueryResults

The decoder turns either shape into records, and leaves the payload raw
when structured output is disabled.
"""

import csv
from typing import Any, AsyncIterable, AsyncIterator, Mapping

from athena_express.decoding.coercion import TypeCoercer
from athena_express.exceptions import ResultDecodingError
from athena_express.logging_config import get_logger
from athena_express.query.models import ColumnManifest, ResultPage

logger = get_logger(__name__)

ROW_KEY = "row"


def decode_listing_line(line: str) -> dict[str, str] | None:
    """
    Decode one line of a UTILITY/DDL listing.

    Returns:
        ``{key: value}`` for a tab-separated pair, ``{"row": value}`` for a
        bare value, None for a blank line

    Examples:
        decode_listing_line("col_name\\tstring\\n") -> {"col_name": "string"}
        decode_listing_line("table_name\\n") -> {"row": "table_name"}
    """
    if line.find("\t") > 0:
        fields = line.split("\t")
        return {fields[0].strip(): fields[1].strip()}

    stripped = line.strip()
    if stripped:
        return {ROW_KEY: stripped}
    return None


async def iter_csv_records(lines: AsyncIterable[str]) -> AsyncIterator[list[str]]:
    """
    Group streamed lines into complete CSV records and parse them.

    A quoted field may contain newlines, so lines are accumulated until the
    number of quote characters is even. Escaped quotes are doubled and keep
    the count even.

    Yields:
        List of field values per record

    Raises:
        ResultDecodingError: If the stream ends inside a quoted field
    """
    pending: list[str] = []
    quotes = 0

    async for line in lines:
        pending.append(line)
        quotes += line.count('"')
        if quotes % 2:
            continue

        text = "".join(pending)
        pending, quotes = [], 0
        if not text.strip("\r\n"):
            continue
        yield next(csv.reader([text]))

    if pending:
        raise ResultDecodingError("Result file ended inside a quoted field")


class ResultDecoder:
    """
    Decodes result payloads for one query.

    Args:
        coercer: Type coercion engine used for structured DML records
        ignore_empty: Omit None cells from structured DML records

    Usage:
        decoder = ResultDecoder(TypeCoercer(use_utc_dates=True))
        items = await decoder.decode_rows(store.iter_lines(bucket, key), manifest)
    """

    def __init__(self, coercer: TypeCoercer | None = None, ignore_empty: bool = True) -> None:
        self.coercer = coercer or TypeCoercer()
        self.ignore_empty = ignore_empty

    async def decode_raw(self, lines: AsyncIterable[str]) -> list[str]:
        """Return every line stripped, without any typing."""
        return [line.strip() async for line in lines]

    async def decode_listing(self, lines: AsyncIterable[str]) -> list[dict[str, str]]:
        """Decode a UTILITY/DDL listing. No type coercion is applied."""
        items = []
        async for line in lines:
            record = decode_listing_line(line)
            if record is not None:
                items.append(record)
        return items

    async def decode_rows(
        self,
        lines: AsyncIterable[str],
        manifest: Mapping[str, str],
    ) -> list[dict[str, Any]]:
        """
        Decode a DML CSV artifact into typed records.

        The first record is the header and names the columns.

        Args:
            lines: Streamed lines of the CSV artifact
            manifest: Column manifest for the execution

        Returns:
            One record per data row
        """
        items = []
        header: list[str] | None = None

        async for fields in iter_csv_records(lines):
            if header is None:
                header = fields
                continue
            if len(fields) != len(header):
                raise ResultDecodingError(
                    f"Row {len(items) + 1} has {len(fields)} fields but the header has {len(header)}"
                )
            items.append(self._build_record(zip(header, fields), manifest))

        logger.debug("Decoded result rows", rows=len(items), columns=len(header or []))
        return items

    def decode_page(
        self,
        response: Mapping[str, Any],
        manifest: ColumnManifest,
        skip_header: bool,
    ) -> ResultPage:
        """
        Decode one GetQueryResults page into typed records.

        Args:
            response: GetQueryResults response
            manifest: Column manifest fetched when the execution succeeded
            skip_header: True for the first page, which repeats the column names

        Returns:
            ResultPage with records and the engine's NextToken
        """
        rows = response.get("ResultSet", {}).get("Rows", [])
        if skip_header:
            rows = rows[1:]

        columns = manifest.names
        items = []
        for row in rows:
            data = row.get("Data", [])
            if len(data) > len(columns):
                raise ResultDecodingError(
                    f"Row has {len(data)} cells but the manifest has {len(columns)} columns"
                )
            cells = ((column, cell.get("VarCharValue")) for column, cell in zip(columns, data))
            items.append(self._build_record(cells, manifest))

        return ResultPage(items=items, next_token=response.get("NextToken"))

    def _build_record(self, cells, manifest: Mapping[str, str]) -> dict[str, Any]:
        record = self.coercer.coerce_row(dict(cells), manifest)
        if self.ignore_empty:
            record = {column: value for column, value in record.items() if value is not None}
        return record
