"""
FastAPI Upload Router for VidVault

Endpoints:
- POST /upload/{video_id} - thumbnail upload, multipart field ``thumbnail``
- POST /upload-video/{video_id} - video upload, multipart field ``video``

Both endpoints authorize the caller against the record before the multipart
body is parsed. The request body is handed to the orchestrator as a lazy
reader, so an unauthorized request is rejected without the upload ever being
read. Responses carry the updated record with raw stored references.
"""

import logging

from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, Field
from starlette.datastructures import UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser

from vidvault.api.dependencies import get_upload_orchestrator
from vidvault.config import Settings, get_settings
from vidvault.core.auth import security
from vidvault.core.errors import MissingFormField, PayloadTooLarge
from vidvault.models.video import VideoResponse
from vidvault.services.upload_service import IncomingFile, ReceiveFile, UploadOrchestrator


logger = logging.getLogger(__name__)

# Allowance for multipart boundaries and part headers on top of the file itself
MULTIPART_OVERHEAD_BYTES = 64 * 1024

THUMBNAIL_FIELD = "thumbnail"
VIDEO_FIELD = "video"


# ============================================================================
# Response Models
# ============================================================================


class ErrorResponse(BaseModel):
    """Error payload returned by every failing endpoint."""

    error: str = Field(..., description="Machine-readable error code", examples=["forbidden"])
    message: str = Field(..., description="Human-readable description")
    details: dict[str, Any] | None = Field(None, description="Additional context")


ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Invalid id or missing file"},
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse, "description": "Missing or invalid token"},
    status.HTTP_403_FORBIDDEN: {"model": ErrorResponse, "description": "Caller does not own the video"},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse, "description": "Video not found"},
    status.HTTP_406_NOT_ACCEPTABLE: {"model": ErrorResponse, "description": "Unsupported media type"},
    status.HTTP_413_CONTENT_TOO_LARGE: {"model": ErrorResponse, "description": "Upload too large"},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse, "description": "Server error"},
}


def _multipart_body(field: str) -> dict[str, Any]:
    # The form is parsed inside the handler, so the body schema is declared by hand
    return {
        "requestBody": {
            "required": True,
            "content": {
                "multipart/form-data": {
                    "schema": {
                        "type": "object",
                        "required": [field],
                        "properties": {field: {"type": "string", "format": "binary"}},
                    }
                }
            },
        }
    }


router = APIRouter(responses=ERROR_RESPONSES)


# ============================================================================
# Form Reading
# ============================================================================


def check_content_length(request: Request, max_bytes: int) -> None:
    """
    Reject a request whose declared body cannot fit under the cap.

    Raises:
        PayloadTooLarge: If Content-Length exceeds ``max_bytes`` plus multipart overhead.
    """
    declared = request.headers.get("content-length")
    if declared is None or not declared.isdigit():
        return

    if int(declared) > max_bytes + MULTIPART_OVERHEAD_BYTES:
        raise PayloadTooLarge(
            f"Upload exceeds the maximum size of {max_bytes} bytes",
            details={"max_bytes": max_bytes},
        )


async def capped_stream(chunks: AsyncIterator[bytes], max_bytes: int) -> AsyncIterator[bytes]:
    """
    Pass body chunks through, failing once they outgrow ``max_bytes`` plus multipart overhead.

    Applies to chunked requests without Content-Length, so an oversize body
    is rejected while it is being received instead of after it was spooled.

    Raises:
        PayloadTooLarge: Once the running total exceeds the limit.
    """
    limit = max_bytes + MULTIPART_OVERHEAD_BYTES
    received = 0
    async for chunk in chunks:
        received += len(chunk)
        if received > limit:
            raise PayloadTooLarge(
                f"Upload exceeds the maximum size of {max_bytes} bytes",
                details={"max_bytes": max_bytes},
            )
        yield chunk


def form_file_reader(request: Request, field: str, max_bytes: int) -> ReceiveFile:
    """
    Build the lazy reader the orchestrator calls once the caller is authorized.

    Args:
        request: Incoming request whose body has not been read yet.
        field: Name of the multipart file field.
        max_bytes: Size cap for the file.

    Returns:
        Coroutine function returning the uploaded file part.
    """

    async def receive_file() -> IncomingFile:
        check_content_length(request, max_bytes)

        media_type = request.headers.get("content-type", "").split(";", 1)[0].strip().lower()
        if media_type != "multipart/form-data":
            raise MissingFormField(
                f"Multipart field '{field}' with a file is required",
                details={"field": field},
            )

        parser = MultiPartParser(
            request.headers,
            capped_stream(request.stream(), max_bytes),
            max_files=1,
        )
        try:
            form = await parser.parse()
        except MultiPartException as exc:
            raise MissingFormField(
                f"Malformed multipart body: {exc.message}",
                details={"field": field},
            ) from exc

        upload = form.get(field)
        if not isinstance(upload, UploadFile):
            raise MissingFormField(
                f"Multipart field '{field}' with a file is required",
                details={"field": field},
            )
        return upload

    return receive_file


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/upload/{video_id}",
    response_model=VideoResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload a thumbnail",
    openapi_extra=_multipart_body(THUMBNAIL_FIELD),
)
async def upload_thumbnail(
    video_id: str,
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> VideoResponse:
    """
    Attach a thumbnail image to a video the caller owns.

    Accepts any ``image/*`` content type up to the configured cap (10 MiB by
    default). Re-uploading replaces the previous thumbnail.
    """
    video = await orchestrator.upload_thumbnail(
        video_id,
        credentials,
        form_file_reader(request, THUMBNAIL_FIELD, settings.max_thumbnail_upload_bytes),
    )
    return VideoResponse.from_video(video)


@router.post(
    "/upload-video/{video_id}",
    response_model=VideoResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload a video",
    openapi_extra=_multipart_body(VIDEO_FIELD),
)
async def upload_video(
    video_id: str,
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> VideoResponse:
    """
    Attach a video file to a record the caller owns.

    The file is rewritten for progressive playback without re-encoding,
    classified by aspect ratio and stored under
    ``{landscape|portrait|other}/{random}.{ext}``. The response carries the
    stored ``bucket,key`` reference; use ``GET /videos/{video_id}`` for a
    playable signed URL.
    """
    video = await orchestrator.upload_video(
        video_id,
        credentials,
        form_file_reader(request, VIDEO_FIELD, settings.max_video_upload_bytes),
    )
    logger.info("Video upload complete", extra={"video_id": video.id})
    return VideoResponse.from_video(video)
