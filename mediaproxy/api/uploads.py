"""
Turning inbound HTTP uploads into WriteRequests.

Three request shapes end up as the same list of WriteRequests:
- multipart form: one request per file part
- raw body with the key in the URL path (PUT)
- raw body with the key in X-File-Path or ?path= (POST /raw)

Anything structurally wrong is rejected here with a 4xx, before the
batch storage sees it.
"""

import logging
from tempfile import SpooledTemporaryFile
from typing import Optional

from fastapi import HTTPException, Request, status
from starlette.datastructures import FormData, UploadFile
from starlette.types import Message

from ..core.storage.content_types import resolve_content_type
from ..core.storage.models import WriteRequest

logger = logging.getLogger(__name__)

# Keys under the files prefix that are routes, not objects
RESERVED_PATHS = frozenset({"read", "raw"})

SPOOL_MAX_MEMORY_BYTES = 8 * 1024 * 1024


def is_reserved_path(file_path: str) -> bool:
    return file_path in RESERVED_PATHS


def validate_object_path(file_path: str) -> str:
    """Reject empty and reserved keys from the URL path."""
    if not file_path or is_reserved_path(file_path):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file path",
        )
    return file_path


def resolve_raw_path(header_path: Optional[str], query_path: Optional[str]) -> str:
    """Object key for POST /raw. The header wins over the query parameter."""
    file_path = header_path or query_path
    if not file_path:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File path required in X-File-Path header or 'path' query parameter",
        )
    return file_path


def body_too_large(max_bytes: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        detail=f"Request body too large. Maximum size: {max_bytes // (1024 * 1024)}MB",
    )


def bounded_request(request: Request, max_bytes: int) -> Request:
    """
    Same request, but its body stops with 413 once max_bytes is exceeded.

    Parsers like request.form() read straight from the ASGI receive
    channel, so the count happens there. Covers chunked bodies that
    carry no Content-Length.
    """
    receive = request.receive
    received = 0

    async def counting_receive() -> Message:
        nonlocal received
        message = await receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > max_bytes:
                logger.warning(
                    "Upload rejected, body too large",
                    extra={"received_bytes": received, "limit_bytes": max_bytes}
                )
                raise body_too_large(max_bytes)
        return message

    return Request(request.scope, receive=counting_receive)


async def spool_body(request: Request, max_bytes: int) -> SpooledTemporaryFile:
    """
    Read the request body into a spooled temp file.

    Small bodies stay in memory, large ones go to disk. Bodies over
    max_bytes are rejected with 413 even when no Content-Length was
    sent. The caller owns the returned file and must close it.
    """
    spool = SpooledTemporaryFile(max_size=SPOOL_MAX_MEMORY_BYTES)
    received = 0
    try:
        async for chunk in request.stream():
            received += len(chunk)
            if received > max_bytes:
                raise body_too_large(max_bytes)
            spool.write(chunk)
    except BaseException:
        spool.close()
        raise

    spool.seek(0)
    return spool


def build_raw_request(request: Request, file_path: str, body: SpooledTemporaryFile) -> WriteRequest:
    """Single WriteRequest from a raw body. Content type from header or extension."""
    content_type = resolve_content_type(file_path, request.headers.get("content-type", ""))
    return WriteRequest(path=file_path, content=body, content_type=content_type)


def build_form_requests(form: FormData) -> list[WriteRequest]:
    """
    One WriteRequest per file part in a multipart form.

    The field name is the object key. A part without a field name falls
    back to its original filename. Plain text fields are ignored.
    """
    requests = []
    for field_name, value in form.multi_items():
        if not isinstance(value, UploadFile):
            continue

        file_path = field_name or value.filename or ""
        if not file_path:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid file path",
            )

        requests.append(WriteRequest(
            path=file_path,
            content=value.file,
            content_type=value.content_type or "",
        ))

    if not requests:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No files provided",
        )

    logger.debug("Parsed multipart upload", extra={"files": len(requests)})
    return requests
