"""Type coercion of raw result cells into Python values.

Athena writes every cell as text. The column manifest carries the declared
type of each column, which drives the conversion:

- ``boolean`` -> bool (case-insensitive true/false)
- integer family -> int, floating family -> float, ``decimal`` -> Decimal
- ``date`` / ``timestamp`` / ``timestamp with time zone`` -> UTC datetime,
  only when ``use_utc_dates`` is enabled
- everything else, unrecognized types included -> unchanged text

An empty cell is always None, whatever the declared type.
"""

import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from athena_express.exceptions import ResultDecodingError

INTEGER_TYPES = frozenset({"tinyint", "smallint", "integer", "int", "bigint"})
FLOAT_TYPES = frozenset({"float", "double", "real"})
DECIMAL_TYPES = frozenset({"decimal"})
BOOLEAN_TYPES = frozenset({"boolean"})
DATE_TYPES = frozenset({"date"})
ZONELESS_TIMESTAMP_TYPES = frozenset({"timestamp"})
ZONED_TIMESTAMP_TYPES = frozenset({"timestamp with time zone"})

_DATE_RE = re.compile(r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})$")

_TIMESTAMP_RE = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"[ T](?P<hour>\d{2}):(?P<minute>\d{2})"
    r"(?::(?P<second>\d{2})(?:\.(?P<fraction>\d{1,9}))?)?"
    r"(?:\s*(?P<zone>"
    r"Z|UTC"
    r"|[+-]\d{2}:?\d{2}"
    r"|[A-Za-z_]+(?:/[A-Za-z0-9_+\-]+)+"
    r"))?$"
)


def normalize_type_name(declared_type: str | None) -> str:
    """Lower-case a declared type and drop precision arguments.

    Examples:
        normalize_type_name("DECIMAL(10,2)") -> "decimal"
        normalize_type_name("timestamp(3) with time zone") -> "timestamp with time zone"
    """
    if not declared_type:
        return ""
    name = re.sub(r"\(.*?\)", "", declared_type.lower())
    return " ".join(name.split())


def _parse_zone(zone: str) -> timezone | ZoneInfo | None:
    if zone in ("Z", "UTC"):
        return timezone.utc
    if zone[0] in "+-":
        digits = zone[1:].replace(":", "")
        offset = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
        return timezone(-offset if zone[0] == "-" else offset)
    try:
        return ZoneInfo(zone)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def parse_utc_date(value: str) -> datetime | None:
    """Parse ``YYYY-MM-DD`` as midnight UTC, or None if it is not a date."""
    match = _DATE_RE.match(value)
    if match is None:
        return None
    try:
        return datetime(
            int(match["year"]), int(match["month"]), int(match["day"]), tzinfo=timezone.utc
        )
    except ValueError:
        return None


def parse_utc_timestamp(value: str, assume_utc: bool) -> datetime | None:
    """
    Parse an Athena timestamp and normalize it to UTC.

    Args:
        value: Timestamp text, e.g. ``2021-07-19 16:01:35.000 +01:00``
        assume_utc: Treat a zone-less value as UTC instead of rejecting it

    Returns:
        Aware datetime in UTC, or None when the value is not eligible
    """
    match = _TIMESTAMP_RE.match(value)
    if match is None:
        return None

    zone_text = match["zone"]
    if zone_text is None:
        if not assume_utc:
            return None
        zone = timezone.utc
    else:
        zone = _parse_zone(zone_text)
        if zone is None:
            return None

    fraction = (match["fraction"] or "0")[:6].ljust(6, "0")
    try:
        local = datetime(
            int(match["year"]),
            int(match["month"]),
            int(match["day"]),
            int(match["hour"]),
            int(match["minute"]),
            int(match["second"] or 0),
            int(fraction),
            tzinfo=zone,
        )
    except ValueError:
        return None

    return local.astimezone(timezone.utc)


class TypeCoercer:
    """
    Converts raw text cells into typed values using a column manifest.

    Usage:
        coercer = TypeCoercer(use_utc_dates=True)
        coercer.coerce_row({"id": "7", "ok": "TRUE"}, {"id": "integer", "ok": "boolean"})
        -> {"id": 7, "ok": True}
    """

    def __init__(self, use_utc_dates: bool = False) -> None:
        self.use_utc_dates = use_utc_dates

    def coerce_value(self, value: str | None, declared_type: str | None, column: str | None = None) -> Any:
        """
        Convert one cell.

        Args:
            value: Raw cell text
            declared_type: Declared column type from the manifest
            column: Column name, used in error context

        Returns:
            Typed value, None for empty cells, or the original text

        Raises:
            ResultDecodingError: If a boolean or numeric cell is malformed
        """
        if value is None or value == "":
            return None

        type_name = normalize_type_name(declared_type)

        try:
            if type_name in BOOLEAN_TYPES:
                return self._to_bool(value)
            if type_name in INTEGER_TYPES:
                return int(value)
            if type_name in FLOAT_TYPES:
                return float(value)
            if type_name in DECIMAL_TYPES:
                return Decimal(value)
        except (ValueError, InvalidOperation) as e:
            raise ResultDecodingError(
                f"Cannot decode {value!r} as {declared_type}", column=column, value=value
            ) from e

        if self.use_utc_dates:
            if type_name in DATE_TYPES:
                return parse_utc_date(value) or value
            if type_name in ZONELESS_TIMESTAMP_TYPES:
                return parse_utc_timestamp(value, assume_utc=True) or value
            if type_name in ZONED_TIMESTAMP_TYPES:
                return parse_utc_timestamp(value, assume_utc=False) or value

        return value

    def coerce_row(self, row: Mapping[str, str | None], manifest: Mapping[str, str]) -> dict[str, Any]:
        """Convert every cell of a record; columns missing from the manifest stay text."""
        return {
            column: self.coerce_value(value, manifest.get(column), column)
            for column, value in row.items()
        }

    @staticmethod
    def _to_bool(value: str) -> bool:
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        raise ValueError(f"not a boolean literal: {value!r}")
