"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order

For local development:
    uvicorn mediaproxy.main:app --reload

For production:
    python -m mediaproxy
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.routes import files, health
from .config.errors import ConfigurationError
from .config.settings import Settings, get_settings
from .core.storage.batch import BatchStorage
from .infrastructure.storage.client import StorageConfig, create_object_store

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


def build_storage_config(settings: Settings) -> StorageConfig:
    return StorageConfig(
        bucket_name=settings.gcs_bucket_name,
        endpoint_url=settings.gcs_endpoint_url,
        project_id=settings.gcp_project_id,
        access_key_id=settings.gcs_hmac_access_key_id,
        secret_access_key=settings.gcs_hmac_secret,
        region=settings.gcs_region,
        connect_timeout_seconds=settings.storage_connect_timeout_seconds,
        read_timeout_seconds=settings.storage_read_timeout_seconds,
        max_attempts=settings.storage_max_attempts,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    The object store session is opened here exactly once and closed
    exactly once on shutdown. Missing configuration or a store that
    can't be created aborts startup.
    """
    settings: Settings = app.state.settings

    logger.info(
        "Media storage proxy starting",
        extra={
            "version": settings.api_version,
            "bucket": settings.gcs_bucket_name,
            "mock_mode": settings.storage_mock_mode,
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )
        raise ConfigurationError(missing_fields)

    object_store = create_object_store(
        config=build_storage_config(settings),
        mock_mode=settings.storage_mock_mode,
    )
    app.state.object_store = object_store
    app.state.storage = BatchStorage(object_store)

    try:
        yield
    finally:
        logger.info("Media storage proxy shutting down")
        await object_store.close()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory.

    Tests pass their own Settings; otherwise they come from the
    environment.
    """
    if settings is None:
        settings = get_settings()

    logging.getLogger().setLevel(settings.log_level.upper())

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Upload and download media files stored in a cloud bucket.

        ## Endpoints

        - `POST /api/v1/storage/files`: multipart upload, one object per file part
        - `PUT /api/v1/storage/files/{path}`: raw body upload to `path`
        - `POST /api/v1/storage/files/raw`: raw body upload, key in `X-File-Path` or `?path=`
        - `POST /api/v1/storage/files/read`: read several objects, base64 content
        - `GET /api/v1/storage/files/{path}`: download one object

        Batch operations never fail as a whole. Each item either appears
        in the result list or in `errors`.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        files.router,
        prefix="/api/v1/storage/files",
        tags=["Files"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request, exc):
        """Request-level failures are reported as plain text."""
        return PlainTextResponse(
            str(exc.detail),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request, exc):
        """Malformed bodies are a 400, same as any other bad request."""
        logger.info(
            "Rejected malformed request",
            extra={"path": request.url.path, "errors": exc.errors()}
        )
        return PlainTextResponse(
            f"Invalid request body: {exc.errors()}",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        We log the full error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


def run() -> None:
    """
    Serve the app with uvicorn.

    On SIGINT/SIGTERM uvicorn stops accepting connections and gives
    in-flight requests shutdown_grace_seconds to finish.
    """
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "mediaproxy.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        timeout_graceful_shutdown=settings.shutdown_grace_seconds,
    )


# Create the application instance
# This is what uvicorn imports
app = create_app()


if __name__ == "__main__":
    run()
