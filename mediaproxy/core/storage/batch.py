"""
Batch read/write orchestration over an object store.

Each item in a batch is processed on its own: a failure becomes a
WriteError/ReadError value and the loop moves on to the next item.
Nothing raised for one item is allowed to abort its siblings. Task
cancellation is the exception: asyncio.CancelledError is not an
Exception subclass, so a disconnected client stops the batch.

Items run strictly one after another. There is no intra-batch
parallelism and no state shared between items.
"""

import asyncio
import logging
from typing import BinaryIO, Protocol, Sequence

from .content_types import resolve_content_type
from .models import (
    FileData,
    FileMetadata,
    ReadError,
    ReadOutcome,
    ReadResponse,
    WriteError,
    WriteOutcome,
    WriteRequest,
    WriteResponse,
)
from .store import ObjectNotFoundError, ObjectStore, ObjectWriter, StorageError

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 256 * 1024


class Storage(Protocol):
    """
    Batch storage capability used by the HTTP layer.

    Tests can swap in any object with these three methods.
    """

    async def write_many(self, requests: Sequence[WriteRequest]) -> WriteResponse:
        ...

    async def read_many(self, paths: Sequence[str]) -> ReadResponse:
        ...

    async def read_one(self, path: str) -> FileData:
        ...


async def copy_stream(source: BinaryIO, writer: ObjectWriter, chunk_size: int = COPY_CHUNK_SIZE) -> int:
    """
    Copy everything from source into writer. Returns bytes copied.

    Reads run in a worker thread: uploads spooled to disk would otherwise
    block the event loop.
    """
    written = 0
    while True:
        chunk = await asyncio.to_thread(source.read, chunk_size)
        if not chunk:
            return written
        await writer.write(chunk)
        written += len(chunk)


class BatchStorage:
    """
    Storage implementation that runs each item against an ObjectStore.

    The store handle is injected and owned by the caller (the app
    lifespan). BatchStorage never closes it.
    """

    def __init__(self, store: ObjectStore) -> None:
        self._store = store

    async def write_many(self, requests: Sequence[WriteRequest]) -> WriteResponse:
        response = WriteResponse()
        for request in requests:
            response.add(await self._write_one(request))

        logger.info(
            "Write batch finished",
            extra={
                "requested": len(requests),
                "written": len(response.files_written),
                "failed": len(response.errors),
            }
        )
        return response

    async def read_many(self, paths: Sequence[str]) -> ReadResponse:
        response = ReadResponse()
        for path in paths:
            response.add(await self._read_one(path))

        logger.info(
            "Read batch finished",
            extra={
                "requested": len(paths),
                "read": len(response.files),
                "failed": len(response.errors),
            }
        )
        return response

    async def read_one(self, path: str) -> FileData:
        """
        Read a single object.

        Same per-item logic as read_many, but a failure is raised instead
        of being collected: ObjectNotFoundError when the object is
        missing, StorageError for anything else.
        """
        try:
            return await self._fetch(path)
        except StorageError as e:
            self._read_failed(path, str(e))
            raise

    # ------------------------------------------------------------------
    # Per-item logic
    # ------------------------------------------------------------------

    async def _write_one(self, request: WriteRequest) -> WriteOutcome:
        path = request.path
        content_type = resolve_content_type(path, request.content_type)

        try:
            writer = await self._store.open_writer(path, content_type)
        except Exception as e:
            return self._write_failed(path, str(e))

        # exiting aborts the writer, a no-op once it has been committed
        async with writer:
            try:
                written = await copy_stream(request.content, writer)
            except Exception as e:
                return self._write_failed(path, str(e))

            try:
                await writer.close()
            except Exception as e:
                return self._write_failed(path, str(e))

        # The object may already be stored even if this fails. It is still
        # reported as a failure; nothing is rolled back.
        try:
            attrs = await self._store.stat(path)
        except Exception as e:
            return self._write_failed(path, f"failed to get file attributes: {e}")

        logger.debug(
            "Wrote object",
            extra={"path": path, "content_type": attrs.content_type, "size_bytes": written}
        )
        return FileMetadata(name=path, content_type=attrs.content_type, size=written)

    async def _read_one(self, path: str) -> ReadOutcome:
        try:
            return await self._fetch(path)
        except Exception as e:
            return self._read_failed(path, str(e))

    async def _fetch(self, path: str) -> FileData:
        """stat, open and read one object. Every failure is a StorageError."""
        try:
            attrs = await self._store.stat(path)
        except Exception as e:
            raise _wrap_error("failed to get object attributes", e) from e

        try:
            reader = await self._store.open_reader(path)
        except Exception as e:
            raise _wrap_error("failed to create reader", e) from e

        async with reader:
            try:
                content = await reader.read()
            except Exception as e:
                raise _wrap_error("failed to read content", e) from e

        metadata = FileMetadata(name=path, content_type=attrs.content_type, size=attrs.size)
        return FileData(metadata=metadata, content=content)

    @staticmethod
    def _write_failed(path: str, message: str) -> WriteError:
        logger.warning("Write failed", extra={"path": path, "error": message})
        return WriteError(file_path=path, error=message)

    @staticmethod
    def _read_failed(path: str, message: str) -> ReadError:
        logger.warning("Read failed", extra={"path": path, "error": message})
        return ReadError(file_path=path, error=message)


def _wrap_error(prefix: str, error: Exception) -> StorageError:
    """Prefix a failure with the step it happened in, keeping not-found distinct."""
    if isinstance(error, ObjectNotFoundError):
        return ObjectNotFoundError(f"{prefix}: {error}")
    return StorageError(f"{prefix}: {error}")
