"""
Video Pydantic models for VidVault.

``Video`` mirrors a document of the ``videos`` collection. Its two media
fields hold stored references (see ``vidvault.models.reference``), never
signed URLs. ``VideoResponse`` is the API shape, built either from the raw
record (upload responses) or with references resolved for reading.
"""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class Video(BaseModel):
    """
    Pydantic model for a video record.

    Attributes:
        id: Canonical UUID string (aliased from _id)
        user_id: Owning user's id
        title: Display title
        description: Free-form description
        video_url: Stored reference to the video object, if uploaded
        thumbnail_url: Stored reference to the thumbnail, if uploaded
        created_at: Creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)
    """

    id: str = Field(..., alias="_id", description="Video UUID as string")
    user_id: str = Field(..., min_length=1, description="Owning user id")
    title: str = Field(default="", max_length=500)
    description: str = Field(default="", max_length=10_000)
    video_url: str | None = Field(default=None, description="Stored video reference")
    thumbnail_url: str | None = Field(default=None, description="Stored thumbnail reference")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(populate_by_name=True)

    def is_owned_by(self, user_id: str) -> bool:
        return self.user_id == user_id


class VideoResponse(BaseModel):
    """API response model for a video record."""

    id: str = Field(..., description="Video id")
    user_id: str = Field(..., description="Owner user id")
    title: str = Field(..., description="Display title")
    description: str = Field(..., description="Description")
    video_url: str | None = Field(None, description="Stored reference or signed URL")
    thumbnail_url: str | None = Field(None, description="Stored reference or resolved URL")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @classmethod
    def from_video(
        cls,
        video: Video,
        *,
        video_url: str | None = None,
        thumbnail_url: str | None = None,
    ) -> "VideoResponse":
        """
        Create response from a Video model.

        Args:
            video: Video record
            video_url: Replacement for the stored video reference (e.g. a signed URL)
            thumbnail_url: Replacement for the stored thumbnail reference

        Returns:
            VideoResponse for the API
        """
        return cls(
            id=video.id,
            user_id=video.user_id,
            title=video.title,
            description=video.description,
            video_url=video_url if video_url is not None else video.video_url,
            thumbnail_url=thumbnail_url if thumbnail_url is not None else video.thumbnail_url,
            created_at=video.created_at,
            updated_at=video.updated_at,
        )
