"""
Shared fixtures.

The app runs in mock mode against an in-memory store, so no bucket or
credentials are needed. Stores that fail on purpose live here too.
"""

import io

import pytest
from fastapi.testclient import TestClient

from mediaproxy.config.settings import Settings
from mediaproxy.core.storage.store import StorageError
from mediaproxy.infrastructure.storage.client import InMemoryObjectStore
from mediaproxy.main import create_app


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------

class UnreadableStream(io.RawIOBase):
    """A content stream that breaks on the first read."""

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        raise OSError("stream broken")


class RecordingWriter:
    """Wraps a writer and records how it was released."""

    def __init__(self, inner, fail_commit: bool = False) -> None:
        self._inner = inner
        self._fail_commit = fail_commit
        self.committed = False
        self.aborted = False

    async def write(self, chunk: bytes) -> None:
        await self._inner.write(chunk)

    async def close(self) -> None:
        if self._fail_commit:
            raise StorageError("commit rejected")
        await self._inner.close()
        self.committed = True

    async def abort(self) -> None:
        self.aborted = True
        await self._inner.abort()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.abort()


class RecordingReader:
    def __init__(self, inner, fail_read: bool = False) -> None:
        self._inner = inner
        self._fail_read = fail_read
        self.closed = False

    async def read(self, size: int = -1) -> bytes:
        if self._fail_read:
            raise StorageError("connection reset")
        return await self._inner.read(size)

    async def close(self) -> None:
        self.closed = True
        await self._inner.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


class FlakyObjectStore(InMemoryObjectStore):
    """
    In-memory store that fails chosen operations for chosen keys.

    Every writer and reader handed out is recorded so tests can check
    they were released.
    """

    def __init__(
        self,
        fail_open_writer=(),
        fail_commit=(),
        fail_stat=(),
        fail_open_reader=(),
        fail_read=(),
    ) -> None:
        super().__init__()
        self.fail_open_writer = set(fail_open_writer)
        self.fail_commit = set(fail_commit)
        self.fail_stat = set(fail_stat)
        self.fail_open_reader = set(fail_open_reader)
        self.fail_read = set(fail_read)
        self.writers: dict[str, RecordingWriter] = {}
        self.readers: dict[str, RecordingReader] = {}
        self.calls: list[tuple[str, str]] = []

    async def open_writer(self, key, content_type):
        self.calls.append(("open_writer", key))
        if key in self.fail_open_writer:
            raise StorageError("bucket unavailable")
        writer = RecordingWriter(
            await super().open_writer(key, content_type),
            fail_commit=key in self.fail_commit,
        )
        self.writers[key] = writer
        return writer

    async def open_reader(self, key):
        self.calls.append(("open_reader", key))
        if key in self.fail_open_reader:
            raise StorageError("reader refused")
        reader = RecordingReader(
            await super().open_reader(key),
            fail_read=key in self.fail_read,
        )
        self.readers[key] = reader
        return reader

    async def stat(self, key):
        self.calls.append(("stat", key))
        if key in self.fail_stat:
            raise StorageError("metadata service timeout")
        return await super().stat(key)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        gcp_project_id="test-project",
        gcs_bucket_name="test-bucket",
        storage_mock_mode=True,
        max_upload_size_mb=1,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def object_store(client) -> InMemoryObjectStore:
    return client.app.state.object_store
