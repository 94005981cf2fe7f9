"""
FastAPI Video Read Router for VidVault

Endpoints:
- GET /videos - list the caller's videos with resolved media URLs
- GET /videos/{video_id} - one owned video with resolved media URLs
- GET /thumbnails/{video_id} - public thumbnail resolver

Stored ``bucket,key`` references are replaced by presigned GET URLs on every
read. Signed URLs are never stored.
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse, Response
from fastapi.security import HTTPAuthorizationCredentials

from vidvault.api.dependencies import get_signed_url_issuer, get_video_store
from vidvault.api.v1.upload import ERROR_RESPONSES
from vidvault.config import Settings, get_settings
from vidvault.core.auth import resolve_user_id, security
from vidvault.core.errors import NotFound, Unauthenticated
from vidvault.models.reference import Inline, parse_reference
from vidvault.models.video import VideoResponse
from vidvault.services.access_control import authorize_video_access, parse_video_id
from vidvault.services.signing_service import SignedUrlIssuer
from vidvault.services.video_store import VideoStore


logger = logging.getLogger(__name__)

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("/videos", response_model=list[VideoResponse], summary="List my videos")
async def list_videos(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
    store: VideoStore = Depends(get_video_store),
    issuer: SignedUrlIssuer = Depends(get_signed_url_issuer),
) -> list[VideoResponse]:
    """List the caller's videos, newest first, with signed media URLs."""
    user_id = resolve_user_id(credentials, settings)
    user = await store.get_user(user_id)
    if user is None:
        raise Unauthenticated("User not found")

    videos = await store.list_videos(user.id)
    return [issuer.sign_video(video) for video in videos]


@router.get("/videos/{video_id}", response_model=VideoResponse, summary="Get one video")
async def get_video(
    video_id: str,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
    store: VideoStore = Depends(get_video_store),
    issuer: SignedUrlIssuer = Depends(get_signed_url_issuer),
) -> VideoResponse:
    """
    Return a video the caller owns.

    ``video_url`` is a presigned GET URL valid for the configured TTL (15
    minutes by default). Fetch the record again for a fresh one.
    """
    access = await authorize_video_access(store, settings, video_id, credentials)
    return issuer.sign_video(access.video)


@router.get(
    "/thumbnails/{video_id}",
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    summary="Fetch a video's thumbnail",
)
async def get_thumbnail(
    video_id: str,
    store: VideoStore = Depends(get_video_store),
    issuer: SignedUrlIssuer = Depends(get_signed_url_issuer),
) -> Response:
    """
    Resolve a thumbnail without authentication.

    Inline thumbnails are served directly. Local and remote thumbnails answer
    with a temporary redirect to the public path or a presigned URL.
    """
    canonical_id = parse_video_id(video_id)
    video = await store.get_video(canonical_id)
    if video is None:
        raise NotFound("Video not found", details={"video_id": canonical_id})
    if not video.thumbnail_url:
        raise NotFound("Video has no thumbnail", details={"video_id": canonical_id})

    reference = parse_reference(video.thumbnail_url)
    if isinstance(reference, Inline):
        return Response(content=reference.data, media_type=reference.content_type)

    location = issuer.resolve_reference(video.thumbnail_url)
    return RedirectResponse(location, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
