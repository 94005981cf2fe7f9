"""
Record ownership checks shared by the upload and read endpoints.

Authorization always runs in the same order so that the response for a given
request is predictable: identifier, credential, record, user, ownership.
Nothing in here touches the request body.
"""

import logging
import uuid

from dataclasses import dataclass

from fastapi.security import HTTPAuthorizationCredentials

from vidvault.config import Settings
from vidvault.core.auth import resolve_user_id
from vidvault.core.errors import BadIdentifier, Forbidden, NotFound, Unauthenticated
from vidvault.models.user import User
from vidvault.models.video import Video
from vidvault.services.video_store import VideoStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VideoAccess:
    """An authenticated user paired with a record they own."""

    video: Video
    user: User


def parse_video_id(raw_video_id: str) -> str:
    """
    Canonicalize a path identifier.

    Raises:
        BadIdentifier: If the value is not a UUID.
    """
    try:
        return str(uuid.UUID(raw_video_id))
    except (ValueError, AttributeError, TypeError) as exc:
        raise BadIdentifier(
            "Video id is not a valid UUID", details={"video_id": raw_video_id}
        ) from exc


async def authorize_video_access(
    store: VideoStore,
    settings: Settings,
    raw_video_id: str,
    credentials: HTTPAuthorizationCredentials | None,
) -> VideoAccess:
    """
    Confirm that the bearer of ``credentials`` owns the record.

    Args:
        store: Record store.
        settings: Settings used for token validation.
        raw_video_id: Identifier as it appeared in the path.
        credentials: Parsed Authorization header, None when absent.

    Returns:
        VideoAccess: The record and its owner.

    Raises:
        BadIdentifier: Malformed id (400).
        Unauthenticated: Missing or invalid token, or unknown user (401).
        NotFound: No record with that id (404).
        Forbidden: The user is not the owner (403).
        PersistenceError: If the store cannot be read.
    """
    video_id = parse_video_id(raw_video_id)
    user_id = resolve_user_id(credentials, settings)

    video = await store.get_video(video_id)
    if video is None:
        raise NotFound("Video not found", details={"video_id": video_id})

    user = await store.get_user(user_id)
    if user is None:
        raise Unauthenticated("User not found")

    if not video.is_owned_by(user.id):
        logger.warning(
            "Rejected access to a video owned by another user",
            extra={"video_id": video_id, "user_id": user.id},
        )
        raise Forbidden("You do not own this video", details={"video_id": video_id})

    return VideoAccess(video=video, user=user)
