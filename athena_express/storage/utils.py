"""Helpers for S3 result locations."""

from athena_express.exceptions import ObjectStoreError


def parse_s3_uri(uri: str) -> tuple[str, str]:
    """
    Split an ``s3://bucket/key`` URI into bucket and key.

    Args:
        uri: Result location reported by Athena

    Returns:
        Tuple of (bucket, key)

    Raises:
        ObjectStoreError: If the URI is not an s3:// URI with a key

    Examples:
        parse_s3_uri("s3://results/athena/abc.csv") -> ("results", "athena/abc.csv")
    """
    parts = uri.split("/")
    if len(parts) < 4 or parts[0] != "s3:" or parts[1] != "" or not parts[2]:
        raise ObjectStoreError("parse_uri", uri, "Expected s3://bucket/key")

    key = "/".join(parts[3:])
    if not key:
        raise ObjectStoreError("parse_uri", uri, "Missing object key")

    return parts[2], key
