"""
Interfaces the batch logic needs from an object store.

Using protocols here means the orchestrator doesn't know whether it is
talking to GCS, R2, MinIO or a dictionary in a test. Adapters live in
infrastructure.storage.
"""

from dataclasses import dataclass
from typing import Any, Protocol


class StorageError(Exception):
    """Raised when an object store operation fails."""
    pass


class ObjectNotFoundError(StorageError):
    """Raised when the requested object does not exist."""
    pass


@dataclass(frozen=True)
class ObjectAttributes:
    """Metadata the store keeps for a single object."""
    name: str
    content_type: str
    size: int


class ObjectWriter(Protocol):
    """
    Write stream for one object.

    Nothing is visible in the bucket until close() returns. abort()
    discards buffered data; calling it after close() is a no-op.
    Used as an async context manager, the writer is aborted on exit.
    """

    async def write(self, chunk: bytes) -> None:
        ...

    async def close(self) -> None:
        ...

    async def abort(self) -> None:
        ...

    async def __aenter__(self) -> "ObjectWriter":
        ...

    async def __aexit__(self, *exc_info: Any) -> None:
        ...


class ObjectReader(Protocol):
    """Read stream for one object. Closed on exit from `async with`."""

    async def read(self, size: int = -1) -> bytes:
        ...

    async def close(self) -> None:
        ...

    async def __aenter__(self) -> "ObjectReader":
        ...

    async def __aexit__(self, *exc_info: Any) -> None:
        ...


class ObjectStore(Protocol):
    """
    Session onto a single bucket.

    One instance is opened at startup and shared by all requests, so
    implementations must be safe for concurrent use.
    """

    async def open_writer(self, key: str, content_type: str) -> ObjectWriter:
        """Start writing an object."""
        ...

    async def open_reader(self, key: str) -> ObjectReader:
        """Open an object for reading. Raises ObjectNotFoundError."""
        ...

    async def stat(self, key: str) -> ObjectAttributes:
        """Fetch object metadata. Raises ObjectNotFoundError."""
        ...

    async def delete(self, key: str) -> None:
        ...

    async def check(self) -> None:
        """Raise StorageError if the bucket is unreachable."""
        ...

    async def close(self) -> None:
        ...
