"""
Object storage integration for media files.

Supports GCS (through its S3-compatible XML API) and any other
S3-compatible store. Includes mock mode for local development without
credentials.
"""

from .client import (
    InMemoryObjectStore,
    S3ObjectStore,
    StorageConfig,
    create_object_store,
)

__all__ = [
    "InMemoryObjectStore",
    "S3ObjectStore",
    "StorageConfig",
    "create_object_store",
]
