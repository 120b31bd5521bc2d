"""
File storage endpoints.

All routes sit under /api/v1/storage/files:

- POST ""               multipart upload (or raw body, same as /raw)
- POST /raw             raw body, key from X-File-Path or ?path=
- POST /read            batch read, JSON list of keys
- PUT  /{file_path}     raw body, key from the URL
- GET  /{file_path}     download one object

The literal routes are registered before the {file_path:path} ones, so
'read' and 'raw' never reach the object routes as keys from a POST.
PUT rejects them as keys. GET treats them like any other key.
"""

import logging
from typing import Annotated, Optional, Union
from urllib.parse import quote

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from fastapi.responses import Response

from ..dependencies import SettingsDep, StorageDep, enforce_upload_limit
from ..schemas import (
    FileMetadataSchema,
    ReadFilesRequest,
    ReadFilesResponse,
    WriteFilesResponse,
)
from ..uploads import (
    bounded_request,
    build_form_requests,
    build_raw_request,
    resolve_raw_path,
    spool_body,
    validate_object_path,
)
from ...config.settings import Settings
from ...core.storage.batch import Storage
from ...core.storage.store import StorageError

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------

async def write_single_file(
    request: Request,
    file_path: str,
    storage: Storage,
    settings: Settings,
) -> FileMetadataSchema:
    """Write one raw body and return its metadata, or fail with 500."""
    body = await spool_body(request, settings.max_upload_size_bytes)
    try:
        write_request = build_raw_request(request, file_path, body)
        response = await storage.write_many([write_request])
    finally:
        body.close()

    if not response.files_written:
        if response.errors:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to write file: {response.errors[0].error}",
            )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="No file was written",
        )

    return FileMetadataSchema.from_domain(response.files_written[0])


def content_disposition(name: str) -> str:
    """attachment header for a download. Non-ASCII names use RFC 5987."""
    try:
        name.encode("latin-1")
    except UnicodeEncodeError:
        return f"attachment; filename*=UTF-8''{quote(name)}"
    return f'attachment; filename="{name}"'


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=None,
    summary="Upload files",
    description="Multipart upload of one or more files. Non-multipart bodies are handled like POST /raw.",
    dependencies=[Depends(enforce_upload_limit)],
)
async def write_files(
    request: Request,
    storage: StorageDep,
    settings: SettingsDep,
    x_file_path: Annotated[Optional[str], Header()] = None,
    path: Annotated[Optional[str], Query()] = None,
) -> Union[WriteFilesResponse, FileMetadataSchema]:
    """
    Write every file part of a multipart form.

    Each part is written independently; failures are listed in `errors`
    and do not stop the other parts.
    """
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("multipart/form-data"):
        file_path = resolve_raw_path(x_file_path, path)
        return await write_single_file(request, file_path, storage, settings)

    form = await bounded_request(request, settings.max_upload_size_bytes).form()
    try:
        write_requests = build_form_requests(form)

        logger.info(
            "Multipart upload started",
            extra={"files": [r.path for r in write_requests]}
        )

        response = await storage.write_many(write_requests)
    finally:
        await form.close()

    return WriteFilesResponse.from_domain(response)


@router.post(
    "/raw",
    response_model=FileMetadataSchema,
    summary="Upload raw file",
    description="Raw body upload. Object key from the X-File-Path header or the 'path' query parameter.",
    dependencies=[Depends(enforce_upload_limit)],
)
async def write_file_raw_from_body(
    request: Request,
    storage: StorageDep,
    settings: SettingsDep,
    x_file_path: Annotated[Optional[str], Header()] = None,
    path: Annotated[Optional[str], Query()] = None,
) -> FileMetadataSchema:
    file_path = resolve_raw_path(x_file_path, path)
    return await write_single_file(request, file_path, storage, settings)


@router.post(
    "/read",
    response_model=ReadFilesResponse,
    summary="Read files",
    description="Read several objects at once. Content is returned base64 encoded.",
)
async def read_files(
    body: ReadFilesRequest,
    storage: StorageDep,
) -> ReadFilesResponse:
    if not body.file_paths:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file paths provided",
        )

    response = await storage.read_many(body.file_paths)
    return ReadFilesResponse.from_domain(response)


@router.put(
    "/{file_path:path}",
    response_model=FileMetadataSchema,
    summary="Upload raw file to path",
    description="Raw body upload. Object key is the URL path after the files prefix.",
    dependencies=[Depends(enforce_upload_limit)],
)
async def write_file_raw(
    file_path: str,
    request: Request,
    storage: StorageDep,
    settings: SettingsDep,
) -> FileMetadataSchema:
    validate_object_path(file_path)
    return await write_single_file(request, file_path, storage, settings)


@router.get(
    "/{file_path:path}",
    summary="Download file",
    description="Returns the raw object bytes as an attachment.",
    response_class=Response,
)
async def read_file(
    file_path: str,
    storage: StorageDep,
) -> Response:
    if not file_path:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File path is required",
        )

    try:
        file_data = await storage.read_one(file_path)
    except StorageError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to read file: {e}",
        )

    metadata = file_data.metadata
    # set directly; media_type would append a charset to text/* types
    return Response(
        content=file_data.content,
        headers={
            "Content-Type": metadata.content_type,
            "Content-Disposition": content_disposition(metadata.name),
        },
    )
