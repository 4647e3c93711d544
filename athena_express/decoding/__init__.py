"""Result decoding for athena-express.

This module turns Athena result payloads (CSV artifacts, text listings and
GetQueryResults pages) into records with native Python values.
"""

from athena_express.decoding.coercion import (
    TypeCoercer,
    normalize_type_name,
    parse_utc_date,
    parse_utc_timestamp,
)
from athena_express.decoding.decoder import ResultDecoder, decode_listing_line

__all__ = [
    "ResultDecoder",
    "TypeCoercer",
    "decode_listing_line",
    "normalize_type_name",
    "parse_utc_date",
    "parse_utc_timestamp",
]
