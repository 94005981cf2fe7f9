"""
VidVault data models.

Exports the record models (Video, User), the API response model and the
stored media reference union.
"""

from vidvault.models.reference import (
    Inline,
    LocalFile,
    RemoteObject,
    StoredMediaReference,
    parse_reference,
)
from vidvault.models.user import User
from vidvault.models.video import Video, VideoResponse


__all__ = [
    "Inline",
    "LocalFile",
    "RemoteObject",
    "StoredMediaReference",
    "User",
    "Video",
    "VideoResponse",
    "parse_reference",
]
