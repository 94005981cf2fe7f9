"""
API v1 Router Aggregation Module for VidVault

Combines the v1 endpoint routers into a single ``api_router`` that
``vidvault.main`` mounts under ``/api/v1``.

Routes:
- /upload/{video_id}, /upload-video/{video_id}: thumbnail and video uploads
- /videos, /videos/{video_id}: owned records with signed media URLs
- /thumbnails/{video_id}: public thumbnail resolver
"""

from fastapi import APIRouter

from vidvault.api.v1.upload import router as upload_router
from vidvault.api.v1.videos import router as videos_router


# ==============================================================================
# Main API Router
# ==============================================================================

api_router = APIRouter()

api_router.include_router(upload_router, tags=["upload"])
api_router.include_router(videos_router, tags=["videos"])

__all__ = ["api_router"]
