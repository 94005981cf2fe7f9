"""
User Pydantic model for VidVault.

Users are created and managed elsewhere; this service only reads them to
confirm that the subject of a bearer token still exists.
"""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """Read-only view of a document in the ``users`` collection."""

    id: str = Field(..., alias="_id", description="User UUID as string")
    email: str | None = Field(default=None, description="User email address")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(populate_by_name=True)
