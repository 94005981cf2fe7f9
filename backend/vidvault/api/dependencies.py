"""
FastAPI dependency providers.

Each collaborator of the route handlers is built here so tests can replace it
through ``app.dependency_overrides`` without touching MongoDB, S3 or ffmpeg.
"""

from fastapi import Depends

from vidvault.config import Settings, get_settings
from vidvault.core.database import get_db_client
from vidvault.core.storage import StorageClient, get_storage_client
from vidvault.services.media_tools import FFmpegToolkit, MediaToolkit
from vidvault.services.signing_service import SignedUrlIssuer
from vidvault.services.upload_service import UploadOrchestrator
from vidvault.services.video_store import VideoStore


def get_storage() -> StorageClient:
    return get_storage_client()


def get_video_store() -> VideoStore:
    return VideoStore(get_db_client())


def get_media_toolkit(settings: Settings = Depends(get_settings)) -> MediaToolkit:
    return FFmpegToolkit(settings)


def get_signed_url_issuer(
    settings: Settings = Depends(get_settings),
    storage: StorageClient = Depends(get_storage),
) -> SignedUrlIssuer:
    return SignedUrlIssuer(storage, settings)


def get_upload_orchestrator(
    settings: Settings = Depends(get_settings),
    store: VideoStore = Depends(get_video_store),
    storage: StorageClient = Depends(get_storage),
    toolkit: MediaToolkit = Depends(get_media_toolkit),
) -> UploadOrchestrator:
    return UploadOrchestrator(settings, store, storage, toolkit)
