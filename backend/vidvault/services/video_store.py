"""
Record store for videos and users.

Thin async layer over the ``videos`` and ``users`` collections. Documents are
keyed by canonical UUID strings in ``_id``. Driver failures surface as
``PersistenceError``; a missing document is ``None`` and the caller decides
what that means.
"""

import logging

from datetime import UTC, datetime
from typing import Literal

from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from vidvault.core.database import DatabaseClient
from vidvault.core.errors import PersistenceError
from vidvault.models.user import User
from vidvault.models.video import Video


logger = logging.getLogger(__name__)

MediaField = Literal["video_url", "thumbnail_url"]

DEFAULT_LIST_LIMIT = 100


class VideoStore:
    """
    Video and user lookups plus the single write the upload pipeline makes.

    Example usage:
        ```python
        store = VideoStore(get_db_client())
        video = await store.get_video(video_id)
        video = await store.update_media_reference(video.id, "video_url", "bucket,landscape/ab.mp4")
        ```
    """

    def __init__(self, db_client: DatabaseClient) -> None:
        self.db_client = db_client

    async def get_video(self, video_id: str) -> Video | None:
        try:
            document = await self.db_client.get_videos_collection().find_one({"_id": video_id})
        except PyMongoError as exc:
            logger.exception("Failed to load video record", extra={"video_id": video_id})
            raise PersistenceError(
                "Failed to load video record", details={"video_id": video_id}
            ) from exc

        return Video.model_validate(document) if document else None

    async def get_user(self, user_id: str) -> User | None:
        try:
            document = await self.db_client.get_users_collection().find_one({"_id": user_id})
        except PyMongoError as exc:
            logger.exception("Failed to load user record", extra={"user_id": user_id})
            raise PersistenceError("Failed to load user record") from exc

        return User.model_validate(document) if document else None

    async def list_videos(self, user_id: str, limit: int = DEFAULT_LIST_LIMIT) -> list[Video]:
        """
        List a user's videos, newest first.

        Args:
            user_id: Owner id.
            limit: Maximum number of records returned.

        Returns:
            list[Video]: The owner's records.

        Raises:
            PersistenceError: On any driver failure.
        """
        try:
            cursor = (
                self.db_client.get_videos_collection()
                .find({"user_id": user_id})
                .sort("created_at", DESCENDING)
                .limit(limit)
            )
            documents = await cursor.to_list(length=limit)
        except PyMongoError as exc:
            logger.exception("Failed to list video records", extra={"user_id": user_id})
            raise PersistenceError("Failed to list video records") from exc

        return [Video.model_validate(document) for document in documents]

    async def update_media_reference(
        self,
        video_id: str,
        field: MediaField,
        reference: str,
    ) -> Video:
        """
        Store a media reference on a record and return the updated record.

        Only ``field`` and ``updated_at`` are written. Concurrent updates of
        the same record are last-writer-wins.

        Args:
            video_id: Record id.
            field: ``"video_url"`` or ``"thumbnail_url"``.
            reference: Wire form of the stored reference.

        Returns:
            Video: The record after the update.

        Raises:
            PersistenceError: If the record no longer exists or the driver fails.
        """
        try:
            document = await self.db_client.get_videos_collection().find_one_and_update(
                {"_id": video_id},
                {"$set": {field: reference, "updated_at": datetime.now(UTC)}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            logger.exception(
                "Failed to update video record", extra={"video_id": video_id, "field": field}
            )
            raise PersistenceError(
                "Failed to update video record", details={"video_id": video_id}
            ) from exc

        if document is None:
            raise PersistenceError(
                "Video record disappeared before it could be updated",
                details={"video_id": video_id},
            )

        logger.info("Updated %s on video record", field, extra={"video_id": video_id})
        return Video.model_validate(document)
