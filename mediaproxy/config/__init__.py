"""
Application configuration using Pydantic settings.

Configuration comes from environment variables with sensible defaults.
Supports a mock mode for local development.
"""

from .errors import ConfigurationError
from .settings import Settings, get_settings

__all__ = ["ConfigurationError", "Settings", "get_settings"]
