"""Object store access for athena-express.

This module provides read access to the result artifacts Athena writes:
- S3 and S3-compatible services via aioboto3
- An in-memory store for tests

Usage:
    store = get_object_store("s3", {"region": "eu-west-1"})
    async for line in store.iter_lines("bucket", "results/abc.csv"):
        ...
"""

from athena_express.storage.backend import MockObjectStore, ObjectStore
from athena_express.storage.utils import parse_s3_uri

__all__ = [
    "MockObjectStore",
    "ObjectStore",
    "get_object_store",
    "parse_s3_uri",
]


def get_object_store(
    backend_type: str,
    config: dict | None = None,
) -> ObjectStore:
    """Create an object store instance.

    Args:
        backend_type: Type of store ("s3", "mock")
        config: Store-specific configuration dictionary

    Returns:
        Configured ObjectStore instance

    Raises:
        ValueError: If backend_type is unknown
    """
    config = config or {}

    if backend_type == "s3":
        from athena_express.storage.s3_backend import S3ObjectStore

        return S3ObjectStore(
            region=config.get("region", "us-east-1"),
            endpoint_url=config.get("endpoint_url"),
            profile_name=config.get("profile_name"),
            session=config.get("session"),
        )

    elif backend_type == "mock":
        return MockObjectStore()

    else:
        raise ValueError(
            f"Unknown object store: {backend_type}. Supported stores: s3, mock"
        )
