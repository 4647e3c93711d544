"""S3 object store for Athena result artifacts.

This module provides an S3 implementation of the ObjectStore interface
with support for:
- AWS S3 and S3-compatible services (MinIO, LocalStack)
- Async streaming reads using aioboto3
- Incremental UTF-8 decoding across chunk boundaries
"""

import codecs
from typing import Any, AsyncIterator

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from athena_express.exceptions import ObjectStoreError
from athena_express.storage.backend import ObjectStore


class S3ObjectStore(ObjectStore):
    """S3 object store.

    Example:
        store = S3ObjectStore(region="us-east-1")
        async for line in store.iter_lines("my-bucket", "results/abc.csv"):
            ...

        store = S3ObjectStore(endpoint_url="http://localhost:9000")
    """

    def __init__(
        self,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        profile_name: str | None = None,
        session: aioboto3.Session | None = None,
        chunk_size: int = 64 * 1024,
    ) -> None:
        """Initialize S3 object store.

        Args:
            region: AWS region (default: us-east-1)
            endpoint_url: Custom S3 endpoint URL (for MinIO, LocalStack, etc.)
            profile_name: Named AWS profile (optional, uses environment if not provided)
            session: Pre-built aioboto3 session shared with other backends
            chunk_size: Bytes read from the response body per iteration
        """
        self.region = region
        self.endpoint_url = endpoint_url
        self.chunk_size = chunk_size
        self._session = session or aioboto3.Session(profile_name=profile_name)

    def _get_client_kwargs(self) -> dict[str, Any]:
        """Get kwargs for creating S3 client."""
        kwargs: dict[str, Any] = {
            "service_name": "s3",
            "region_name": self.region,
        }

        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url

        return kwargs

    async def iter_lines(self, bucket: str, key: str) -> AsyncIterator[str]:
        """Stream an S3 object as text lines.

        Raises:
            ObjectStoreError: If the object is missing or the read fails
        """
        location = f"s3://{bucket}/{key}"
        decoder = codecs.getincrementaldecoder("utf-8")()
        pending = ""

        try:
            async with self._session.client(**self._get_client_kwargs()) as s3:
                response = await s3.get_object(Bucket=bucket, Key=key)
                async with response["Body"] as body:
                    async for chunk in body.iter_chunks(self.chunk_size):
                        pending += decoder.decode(chunk)
                        # last piece may be an unterminated line
                        *lines, pending = pending.split("\n")
                        for line in lines:
                            yield line + "\n"

            pending += decoder.decode(b"", final=True)
            if pending:
                yield pending

        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            raise ObjectStoreError("get_object", location, code) from e
        except BotoCoreError as e:
            raise ObjectStoreError("get_object", location, str(e)) from e
