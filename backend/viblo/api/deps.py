"""Shared router dependencies and error mapping."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Header, HTTPException, Request
from fastapi.responses import JSONResponse

from viblo.config import settings
from viblo.domain.validation import validate_upload_size
from viblo.errors import (
    FormValidationError,
    NotFoundError,
    PermissionDeniedError,
    RemoteCallError,
    VibloError,
)
from viblo.models.submission import VideoUpload
from viblo.session import SessionContext

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: list[tuple[type[VibloError], int]] = [
    (FormValidationError, 422),
    (NotFoundError, 404),
    (PermissionDeniedError, 403),
    (RemoteCallError, 502),
]


async def get_session(authorization: Optional[str] = Header(default=None)) -> SessionContext:
    """Resolve ``Authorization: Bearer <token>`` into a session with its profile."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(401, "Missing bearer token")
    token = authorization.split(" ", 1)[1].strip()
    try:
        return await SessionContext.from_access_token(token)
    except RemoteCallError as e:
        raise HTTPException(401, e.message)


async def read_limited_body(
    request: Request, max_bytes: int, noun: str = "a video", field: str = "video"
) -> bytes:
    """Read the raw body, refusing anything over ``max_bytes`` before buffering it all."""
    declared = request.headers.get("content-length")
    if declared and declared.isdigit():
        validate_upload_size(int(declared), max_bytes, noun, field)
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        validate_upload_size(len(body), max_bytes, noun, field)
    return bytes(body)


async def read_video(request: Request, file_name: str = "video.mp4") -> VideoUpload:
    """Raw request body as an upload; the file name carries the extension."""
    content_type = request.headers.get("content-type")
    return VideoUpload(
        content=await read_limited_body(request, settings.max_video_bytes),
        file_name=file_name,
        mime_type=content_type if content_type and content_type.startswith("video/") else None,
    )


async def viblo_error_handler(request: Request, exc: VibloError) -> JSONResponse:
    status = 400
    for error_type, code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status = code
            break
    body: dict = {"detail": exc.message}
    if isinstance(exc, FormValidationError) and exc.field:
        body["field"] = exc.field
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status, content=body)
