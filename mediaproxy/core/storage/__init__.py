"""
Batch file storage: data model, content type inference and the
orchestrator that runs reads and writes against an object store.
"""

from .batch import BatchStorage, Storage
from .content_types import detect_content_type, resolve_content_type
from .models import (
    FileData,
    FileMetadata,
    ReadError,
    ReadResponse,
    WriteError,
    WriteRequest,
    WriteResponse,
)
from .store import (
    ObjectAttributes,
    ObjectNotFoundError,
    ObjectReader,
    ObjectStore,
    ObjectWriter,
    StorageError,
)

__all__ = [
    "BatchStorage",
    "FileData",
    "FileMetadata",
    "ObjectAttributes",
    "ObjectNotFoundError",
    "ObjectReader",
    "ObjectStore",
    "ObjectWriter",
    "ReadError",
    "ReadResponse",
    "Storage",
    "StorageError",
    "WriteError",
    "WriteRequest",
    "WriteResponse",
    "detect_content_type",
    "resolve_content_type",
]
