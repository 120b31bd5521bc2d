"""
Object store clients for the media bucket.

The production bucket is Google Cloud Storage, reached through its
S3-compatible XML API (https://storage.googleapis.com). Talking S3
through boto3 means the same client works against GCS, R2, MinIO or
plain S3 by changing the endpoint URL.

Mock mode keeps objects in memory, enabling API testing without
provisioning a bucket.
"""

import asyncio
import io
import logging
from dataclasses import dataclass
from tempfile import SpooledTemporaryFile
from typing import Any, Optional

from ...core.storage.content_types import DEFAULT_CONTENT_TYPE
from ...core.storage.store import (
    ObjectAttributes,
    ObjectNotFoundError,
    ObjectStore,
    StorageError,
)

logger = logging.getLogger(__name__)

# Writes larger than this spill from memory to a temp file before upload.
SPOOL_MAX_MEMORY_BYTES = 8 * 1024 * 1024

NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


@dataclass
class StorageConfig:
    """
    Configuration for an S3-compatible bucket.

    Credentials are optional. Without them boto3 falls back to its
    default chain (environment, shared config, instance metadata).
    """
    bucket_name: str
    endpoint_url: str
    project_id: str = ""
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    region: str = "auto"
    connect_timeout_seconds: float = 10.0
    read_timeout_seconds: float = 60.0
    max_attempts: int = 3


def _translate_error(error: Exception, key: str, action: str) -> StorageError:
    """Map a boto error onto our storage errors."""
    response = getattr(error, "response", None) or {}
    code = str(response.get("Error", {}).get("Code", ""))
    if code in NOT_FOUND_CODES:
        return ObjectNotFoundError(f"object not found: {key}")
    return StorageError(f"{action} failed: {error}")


class S3ObjectStore:
    """
    Object store client backed by boto3.

    boto3 is synchronous, so every call runs in a worker thread via
    asyncio.to_thread. The event loop stays free for other requests and
    a cancelled request stops waiting on the call.

    The boto3 client is thread-safe and shared by all requests for the
    lifetime of the process.
    """

    def __init__(self, config: StorageConfig, s3_client: Any = None) -> None:
        """
        Initialize the client.

        s3_client lets tests hand in a fake. Otherwise a boto3 client is
        built from the config.
        """
        self._config = config
        self._s3_client = s3_client if s3_client is not None else self._build_client(config)

        if config.project_id:
            self._s3_client.meta.events.register("before-sign.s3", self._add_project_header)

        logger.info(
            "Initialized S3 object store",
            extra={
                "bucket": config.bucket_name,
                "endpoint": config.endpoint_url,
                "project_id": config.project_id,
            }
        )

    @staticmethod
    def _build_client(config: StorageConfig) -> Any:
        try:
            import boto3
            from botocore.config import Config
        except ImportError:
            raise ImportError(
                "boto3 is required for bucket storage. Install with: pip install boto3"
            )

        boto_config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
            connect_timeout=config.connect_timeout_seconds,
            read_timeout=config.read_timeout_seconds,
            retries={"max_attempts": config.max_attempts, "mode": "standard"},
        )

        return boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
            config=boto_config,
        )

    def _add_project_header(self, request: Any, **kwargs: Any) -> None:
        # GCS XML API scopes requests to a project with this header
        request.headers["x-goog-project-id"] = self._config.project_id

    @property
    def bucket_name(self) -> str:
        return self._config.bucket_name

    async def open_writer(self, key: str, content_type: str) -> "S3ObjectWriter":
        return S3ObjectWriter(self, key, content_type)

    async def open_reader(self, key: str) -> "S3ObjectReader":
        try:
            response = await asyncio.to_thread(
                self._s3_client.get_object,
                Bucket=self._config.bucket_name,
                Key=key,
            )
        except Exception as e:
            raise _translate_error(e, key, "get object") from e

        return S3ObjectReader(key, response["Body"])

    async def stat(self, key: str) -> ObjectAttributes:
        try:
            response = await asyncio.to_thread(
                self._s3_client.head_object,
                Bucket=self._config.bucket_name,
                Key=key,
            )
        except Exception as e:
            raise _translate_error(e, key, "head object") from e

        return ObjectAttributes(
            name=key,
            content_type=response.get("ContentType") or DEFAULT_CONTENT_TYPE,
            size=int(response.get("ContentLength", 0)),
        )

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(
                self._s3_client.delete_object,
                Bucket=self._config.bucket_name,
                Key=key,
            )
        except Exception as e:
            raise _translate_error(e, key, "delete object") from e

    async def check(self) -> None:
        try:
            await asyncio.to_thread(
                self._s3_client.head_bucket,
                Bucket=self._config.bucket_name,
            )
        except Exception as e:
            raise StorageError(f"bucket {self._config.bucket_name} is not reachable: {e}") from e

    async def close(self) -> None:
        await asyncio.to_thread(self._s3_client.close)
        logger.info("Closed S3 object store", extra={"bucket": self._config.bucket_name})

    async def _put(self, key: str, body: Any, content_type: str) -> None:
        try:
            await asyncio.to_thread(
                self._s3_client.put_object,
                Bucket=self._config.bucket_name,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except Exception as e:
            raise _translate_error(e, key, "put object") from e


class S3ObjectWriter:
    """
    Buffers an object locally and uploads it on close().

    A single put_object keeps the commit atomic: the object either
    appears whole or not at all.
    """

    def __init__(self, store: S3ObjectStore, key: str, content_type: str) -> None:
        self._store = store
        self._key = key
        self._content_type = content_type
        self._buffer = SpooledTemporaryFile(max_size=SPOOL_MAX_MEMORY_BYTES)
        self._done = False

    async def write(self, chunk: bytes) -> None:
        if self._done:
            raise StorageError(f"writer for {self._key} is closed")
        # rolled-over spools write to disk
        await asyncio.to_thread(self._buffer.write, chunk)

    async def close(self) -> None:
        if self._done:
            return
        self._buffer.seek(0)
        await self._store._put(self._key, self._buffer, self._content_type)
        self._done = True
        self._buffer.close()

    async def abort(self) -> None:
        if self._done:
            return
        self._done = True
        self._buffer.close()

    async def __aenter__(self) -> "S3ObjectWriter":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.abort()


class S3ObjectReader:
    """Wraps the botocore StreamingBody of a get_object response."""

    def __init__(self, key: str, body: Any) -> None:
        self._key = key
        self._body = body

    async def read(self, size: int = -1) -> bytes:
        amount = None if size < 0 else size
        try:
            return await asyncio.to_thread(self._body.read, amount)
        except Exception as e:
            raise StorageError(f"read {self._key} failed: {e}") from e

    async def close(self) -> None:
        self._body.close()

    async def __aenter__(self) -> "S3ObjectReader":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


# ---------------------------------------------------------------------------
# In-memory store for local development
# ---------------------------------------------------------------------------

class InMemoryObjectStore:
    """
    Dictionary-backed object store.

    Enables running the full API without a bucket. Objects live as long
    as the instance, which the app keeps for the whole process.

    Not suitable for production, but perfect for development and testing.
    """

    def __init__(self) -> None:
        # {key: (content, content_type)}
        self._objects: dict[str, tuple[bytes, str]] = {}
        logger.info("Initialized in-memory object store")

    def __contains__(self, key: str) -> bool:
        return key in self._objects

    async def open_writer(self, key: str, content_type: str) -> "InMemoryObjectWriter":
        return InMemoryObjectWriter(self, key, content_type)

    async def open_reader(self, key: str) -> "InMemoryObjectReader":
        if key not in self._objects:
            raise ObjectNotFoundError(f"object not found: {key}")
        content, _ = self._objects[key]
        return InMemoryObjectReader(content)

    async def stat(self, key: str) -> ObjectAttributes:
        if key not in self._objects:
            raise ObjectNotFoundError(f"object not found: {key}")
        content, content_type = self._objects[key]
        return ObjectAttributes(name=key, content_type=content_type, size=len(content))

    async def delete(self, key: str) -> None:
        self._objects.pop(key, None)

    async def check(self) -> None:
        return None

    async def close(self) -> None:
        logger.info("Closed in-memory object store", extra={"objects": len(self._objects)})

    def _commit(self, key: str, content: bytes, content_type: str) -> None:
        self._objects[key] = (content, content_type)
        logger.debug(
            "Stored object in memory",
            extra={"key": key, "size_bytes": len(content)}
        )


class InMemoryObjectWriter:
    def __init__(self, store: InMemoryObjectStore, key: str, content_type: str) -> None:
        self._store = store
        self._key = key
        self._content_type = content_type
        self._buffer = io.BytesIO()
        self._done = False

    async def write(self, chunk: bytes) -> None:
        if self._done:
            raise StorageError(f"writer for {self._key} is closed")
        self._buffer.write(chunk)

    async def close(self) -> None:
        if self._done:
            return
        self._store._commit(self._key, self._buffer.getvalue(), self._content_type)
        self._done = True

    async def abort(self) -> None:
        self._done = True

    async def __aenter__(self) -> "InMemoryObjectWriter":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.abort()


class InMemoryObjectReader:
    def __init__(self, content: bytes) -> None:
        self._stream = io.BytesIO(content)

    async def read(self, size: int = -1) -> bytes:
        return self._stream.read(size)

    async def close(self) -> None:
        self._stream.close()

    async def __aenter__(self) -> "InMemoryObjectReader":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_object_store(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> ObjectStore:
    """
    Create the object store for this process.

    Args:
        config: Bucket configuration (required if not mock_mode)
        mock_mode: If True, return an in-memory store

    Returns:
        ObjectStore implementation (S3-compatible or in-memory)
    """
    if mock_mode:
        return InMemoryObjectStore()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3ObjectStore(config)
