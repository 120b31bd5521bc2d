"""
FastAPI dependency injection.

The object store session and the batch storage built on it are created
once in the app lifespan and kept on app.state. Dependencies hand them
to route handlers, so routes never build their own clients and tests
can swap them with app.dependency_overrides.
"""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from ..config.settings import Settings
from ..core.storage.batch import Storage
from ..core.storage.store import ObjectStore

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    return request.app.state.settings


def get_storage(request: Request) -> Storage:
    """Batch storage shared by all requests."""
    return request.app.state.storage


def get_object_store(request: Request) -> ObjectStore:
    """Raw object store session, for health checks."""
    return request.app.state.object_store


def enforce_upload_limit(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> None:
    """
    Reject uploads whose declared size is over the limit.

    Bodies without a Content-Length are counted while they are read
    (api.uploads.spool_body for raw bodies, bounded_request for forms).
    """
    declared = request.headers.get("content-length")
    if declared is None:
        return

    try:
        size = int(declared)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid Content-Length header",
        )

    if size > settings.max_upload_size_bytes:
        logger.warning(
            "Upload rejected, body too large",
            extra={"size_bytes": size, "limit_bytes": settings.max_upload_size_bytes}
        )
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Request body too large. Maximum size: {settings.max_upload_size_mb}MB",
        )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

SettingsDep = Annotated[Settings, Depends(get_app_settings)]
StorageDep = Annotated[Storage, Depends(get_storage)]
ObjectStoreDep = Annotated[ObjectStore, Depends(get_object_store)]
