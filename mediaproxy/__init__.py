"""
mediaproxy - an HTTP proxy for media files kept in an object-storage bucket.

This package contains the complete application:
- core: Framework-agnostic batch read/write logic
- infrastructure: Object store adapters (S3-compatible and in-memory)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
