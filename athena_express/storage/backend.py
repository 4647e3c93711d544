"""Object store interface for reading query result artifacts.

Key Design Principles:
- Read-only: Athena writes results, this library only streams them back
- Objects are consumed as a stream of text lines so large results are never
  held as one byte string
- All operations are async for consistent API
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator

from athena_express.exceptions import ObjectStoreError


class ObjectStore(ABC):
    """Abstract base class for object stores."""

    @abstractmethod
    def iter_lines(self, bucket: str, key: str) -> AsyncIterator[str]:
        """Stream an object as text lines.

        Lines keep their trailing newline so that callers can reassemble
        records that span several lines.

        Args:
            bucket: Bucket name
            key: Object key

        Returns:
            Async iterator of decoded lines

        Raises:
            ObjectStoreError: If the object is missing or cannot be read
        """
        pass


class MockObjectStore(ObjectStore):
    """In-memory object store for testing and development."""

    def __init__(self) -> None:
        """Initialize mock object store."""
        self._objects: dict[tuple[str, str], bytes] = {}
        self.reads: list[tuple[str, str]] = []

    def add_object(self, bucket: str, key: str, content: bytes | str) -> None:
        """Add an object to mock storage (for testing)."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        self._objects[(bucket, key)] = content

    async def iter_lines(self, bucket: str, key: str) -> AsyncIterator[str]:
        """Stream a stored object line by line."""
        self.reads.append((bucket, key))
        if (bucket, key) not in self._objects:
            raise ObjectStoreError("get_object", f"s3://{bucket}/{key}", "NoSuchKey")

        *lines, last = self._objects[(bucket, key)].decode("utf-8").split("\n")
        for line in lines:
            yield line + "\n"
        if last:
            yield last

    def clear_all(self) -> None:
        """Clear all objects (for testing)."""
        self._objects.clear()
        self.reads.clear()
