"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables (and an optional
.env file) with sensible defaults. Using Pydantic's BaseSettings means
we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock mode enables local development without a bucket.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Media Storage Proxy"
    api_version: str = "v1"

    # Server
    host: str = Field(
        default="0.0.0.0",
        description="Interface to bind"
    )
    port: int = Field(
        default=8080,
        description="Listening port"
    )
    shutdown_grace_seconds: int = Field(
        default=10,
        description="How long in-flight requests get to finish on shutdown"
    )

    # GCS Configuration
    gcp_project_id: str = Field(
        default="",
        description="GCP project identifier. Required."
    )
    gcs_bucket_name: str = Field(
        default="",
        description="Bucket holding the media objects. Required."
    )
    gcs_endpoint_url: str = Field(
        default="https://storage.googleapis.com",
        description="S3-compatible endpoint. Point at MinIO/R2/S3 to use another store."
    )
    gcs_region: str = Field(
        default="auto",
        description="Signing region. GCS accepts 'auto'."
    )
    gcs_hmac_access_key_id: Optional[str] = Field(
        default=None,
        description="HMAC access key. Falls back to the boto3 credential chain when unset."
    )
    gcs_hmac_secret: Optional[str] = Field(
        default=None,
        description="HMAC secret paired with gcs_hmac_access_key_id"
    )
    storage_mock_mode: bool = Field(
        default=False,
        description="Use an in-memory store instead of the bucket. Enables local dev without credentials."
    )
    storage_connect_timeout_seconds: float = Field(
        default=10.0,
        description="Connect timeout for every store call"
    )
    storage_read_timeout_seconds: float = Field(
        default=60.0,
        description="Read timeout for every store call"
    )
    storage_max_attempts: int = Field(
        default=3,
        description="Total attempts per store call, including the first"
    )

    # Application Behavior
    max_upload_size_mb: int = Field(
        default=100,
        description="Maximum request body size in MB. Larger uploads are rejected with 413."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    def validate_required_fields(self) -> list[str]:
        """
        Return the names of required environment variables that are unset.

        Project and bucket are required even in mock mode so a local run
        is configured the same way as production.
        """
        missing = []

        if not self.gcp_project_id:
            missing.append("GCP_PROJECT_ID")
        if not self.gcs_bucket_name:
            missing.append("GCS_BUCKET_NAME")

        # HMAC keys only make sense as a pair
        if bool(self.gcs_hmac_access_key_id) != bool(self.gcs_hmac_secret):
            missing.append("GCS_HMAC_ACCESS_KEY_ID and GCS_HMAC_SECRET")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
