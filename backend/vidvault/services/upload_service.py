"""
Upload Orchestrator

Sequences one upload from the authenticated request to the updated record.

Video:
    authorizing -> staging -> fast_start -> probing -> naming -> uploading
    -> persisting_record -> done

Thumbnail:
    authorizing -> staging -> naming -> uploading -> persisting_record -> done

Any step may end in ``aborted``. The request body is only read once
authorization has succeeded, so a rejected caller never causes a disk write,
an object store write or a record update. Local resources (the upload handle,
the staged file and the rewritten file) are registered on one
``AsyncExitStack`` and released on every exit path.

An object that was uploaded but whose record update then failed is left in
place and logged; there is no compensating delete.
"""

import asyncio
import logging
import os
import shutil
import tempfile

from collections.abc import Awaitable, Callable
from contextlib import AsyncExitStack
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from fastapi.security import HTTPAuthorizationCredentials

from vidvault.config import Settings
from vidvault.core.errors import PersistenceError, StagingIOError, VidVaultError
from vidvault.core.storage import StorageClient
from vidvault.models.reference import LocalFile, RemoteObject
from vidvault.models.video import Video
from vidvault.services.access_control import VideoAccess, authorize_video_access
from vidvault.services.key_namer import derive_thumbnail_key, derive_video_key
from vidvault.services.media_classifier import (
    MediaKind,
    classify_aspect_ratio,
    classify_media_type,
)
from vidvault.services.media_tools import MediaToolkit, rewrite_for_progressive_playback
from vidvault.services.staging import discard_file, stage
from vidvault.services.video_store import MediaField, VideoStore
from vidvault.utils.logger import ContextLoggerAdapter, add_log_context


logger = logging.getLogger(__name__)


class UploadState(str, Enum):
    """Steps of an upload run."""

    AUTHORIZING = "authorizing"
    STAGING = "staging"
    FAST_START = "fast_start"
    PROBING = "probing"
    NAMING = "naming"
    UPLOADING = "uploading"
    PERSISTING_RECORD = "persisting_record"
    DONE = "done"
    ABORTED = "aborted"


class IncomingFile(Protocol):
    """The parts of Starlette's UploadFile the pipeline relies on."""

    content_type: str | None

    async def read(self, size: int = -1) -> bytes: ...

    async def close(self) -> None: ...


ReceiveFile = Callable[[], Awaitable[IncomingFile]]


# =============================================================================
# Run bookkeeping
# =============================================================================


class UploadRun:
    """
    State tracker for one upload, logging every transition.

    The context logger starts with ``video_id`` and ``operation`` and gains
    ``user_id`` once the caller has been authorized.
    """

    def __init__(self, operation: str, raw_video_id: str) -> None:
        self.state = UploadState.AUTHORIZING
        self.log: ContextLoggerAdapter = add_log_context(
            logger, operation=operation, video_id=raw_video_id
        )
        self.log.debug("Upload entered state %s", self.state.value)

    def authorized(self, access: VideoAccess) -> None:
        self.log = add_log_context(self.log, video_id=access.video.id, user_id=access.user.id)

    def advance(self, state: UploadState) -> None:
        self.log.info(
            "Upload %s -> %s",
            self.state.value,
            state.value,
            extra={"state": state.value},
        )
        self.state = state

    def abort(self, exc: BaseException) -> None:
        failed_in = self.state.value
        self.state = UploadState.ABORTED

        if isinstance(exc, VidVaultError):
            level = logging.ERROR if exc.is_server_error else logging.WARNING
            self.log.log(
                level,
                "Upload aborted in state %s: %s",
                failed_in,
                exc.message,
                extra={"state": failed_in, "error_code": exc.error_code},
            )
        elif isinstance(exc, asyncio.CancelledError):
            self.log.warning("Upload cancelled in state %s", failed_in, extra={"state": failed_in})
        else:
            self.log.exception("Upload aborted in state %s", failed_in, extra={"state": failed_in})


def _write_atomically(source: Path, destination: Path) -> None:
    """Copy ``source`` next to ``destination`` and rename it into place."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(
        prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent
    )
    os.close(fd)
    scratch = Path(name)
    try:
        shutil.copyfile(source, scratch)
        os.replace(scratch, destination)
    finally:
        if scratch.exists():
            discard_file(scratch)


# =============================================================================
# Orchestrator
# =============================================================================


class UploadOrchestrator:
    """
    Runs the thumbnail and video upload pipelines.

    Attributes:
        settings: Size caps, staging directory and thumbnail storage mode
        store: Record store
        storage: Object store client
        toolkit: ffmpeg/ffprobe implementation

    Example usage:
        ```python
        orchestrator = UploadOrchestrator(settings, store, storage, FFmpegToolkit(settings))
        video = await orchestrator.upload_video(video_id, credentials, receive_file)
        ```
    """

    def __init__(
        self,
        settings: Settings,
        store: VideoStore,
        storage: StorageClient,
        toolkit: MediaToolkit,
    ) -> None:
        self.settings = settings
        self.store = store
        self.storage = storage
        self.toolkit = toolkit

    async def authorize(
        self,
        raw_video_id: str,
        credentials: HTTPAuthorizationCredentials | None,
    ) -> VideoAccess:
        return await authorize_video_access(self.store, self.settings, raw_video_id, credentials)

    async def upload_video(
        self,
        raw_video_id: str,
        credentials: HTTPAuthorizationCredentials | None,
        receive_file: ReceiveFile,
    ) -> Video:
        """
        Store a video for a record the caller owns.

        The file is rewritten for fast start, probed for its orientation and
        uploaded under ``{orientation}/{random}.{ext}``; the record's
        ``video_url`` then holds ``"{bucket},{key}"``.

        Args:
            raw_video_id: Record id from the path.
            credentials: Bearer credentials, None when absent.
            receive_file: Coroutine function returning the uploaded file part.
                Called only after authorization.

        Returns:
            Video: The updated record.

        Raises:
            VidVaultError: Any pipeline failure, see ``vidvault.core.errors``.
        """
        run = UploadRun("upload_video", raw_video_id)
        try:
            access = await self.authorize(raw_video_id, credentials)
            run.authorized(access)

            async with AsyncExitStack() as stack:
                run.advance(UploadState.STAGING)
                upload = await receive_file()
                stack.push_async_callback(upload.close)
                content_type = upload.content_type or ""
                extension = classify_media_type(content_type, MediaKind.VIDEO)
                staged = await stack.enter_async_context(
                    stage(
                        upload,
                        max_bytes=self.settings.max_video_upload_bytes,
                        suffix=f".{extension}",
                        content_type=content_type,
                        directory=self.settings.staging_dir,
                    )
                )
                run.log.info("Staged video upload", extra={"size": staged.size})

                run.advance(UploadState.FAST_START)
                rewritten = await rewrite_for_progressive_playback(self.toolkit, staged.path)
                stack.callback(discard_file, rewritten)

                run.advance(UploadState.PROBING)
                orientation = classify_aspect_ratio(await self.toolkit.probe(rewritten))

                run.advance(UploadState.NAMING)
                key = derive_video_key(orientation, extension)

                run.advance(UploadState.UPLOADING)
                await self.storage.upload_file(rewritten, key, content_type)
                reference = RemoteObject(bucket=self.storage.bucket_name, key=key)

                run.advance(UploadState.PERSISTING_RECORD)
                video = await self._persist(
                    run,
                    access.video.id,
                    "video_url",
                    reference.to_wire(),
                    orphan={"bucket": reference.bucket, "key": reference.key},
                )
        except BaseException as exc:
            run.abort(exc)
            raise

        run.advance(UploadState.DONE)
        return video

    async def upload_thumbnail(
        self,
        raw_video_id: str,
        credentials: HTTPAuthorizationCredentials | None,
        receive_file: ReceiveFile,
    ) -> Video:
        """
        Store a thumbnail for a record the caller owns.

        With local thumbnail storage the image is written to
        ``{assets_root}/{video_id}.{ext}`` and referenced by its public path;
        with ``s3`` it is uploaded under the thumbnail prefix. Either way a
        re-upload replaces the previous file.

        Args:
            raw_video_id: Record id from the path.
            credentials: Bearer credentials, None when absent.
            receive_file: Coroutine function returning the uploaded file part.

        Returns:
            Video: The updated record.

        Raises:
            VidVaultError: Any pipeline failure, see ``vidvault.core.errors``.
        """
        run = UploadRun("upload_thumbnail", raw_video_id)
        try:
            access = await self.authorize(raw_video_id, credentials)
            run.authorized(access)
            video_id = access.video.id

            async with AsyncExitStack() as stack:
                run.advance(UploadState.STAGING)
                upload = await receive_file()
                stack.push_async_callback(upload.close)
                content_type = upload.content_type or ""
                extension = classify_media_type(content_type, MediaKind.IMAGE)
                staged = await stack.enter_async_context(
                    stage(
                        upload,
                        max_bytes=self.settings.max_thumbnail_upload_bytes,
                        suffix=f".{extension}",
                        content_type=content_type,
                        directory=self.settings.staging_dir,
                    )
                )

                if self.settings.stores_thumbnails_locally:
                    run.advance(UploadState.NAMING)
                    name = derive_thumbnail_key(video_id, extension)

                    run.advance(UploadState.UPLOADING)
                    destination = self.settings.assets_root / name
                    try:
                        await asyncio.to_thread(_write_atomically, staged.path, destination)
                    except OSError as exc:
                        raise StagingIOError(
                            "Unable to write thumbnail", details={"path": str(destination)}
                        ) from exc
                    reference_text = LocalFile(
                        path=f"{self.settings.assets_url_prefix}/{name}"
                    ).to_wire()
                    orphan: dict[str, Any] = {"path": str(destination)}
                else:
                    run.advance(UploadState.NAMING)
                    key = derive_thumbnail_key(
                        video_id, extension, prefix=self.settings.s3_thumbnail_prefix
                    )

                    run.advance(UploadState.UPLOADING)
                    await self.storage.upload_file(staged.path, key, content_type)
                    reference_text = RemoteObject(
                        bucket=self.storage.bucket_name, key=key
                    ).to_wire()
                    orphan = {"bucket": self.storage.bucket_name, "key": key}

                run.advance(UploadState.PERSISTING_RECORD)
                video = await self._persist(
                    run, video_id, "thumbnail_url", reference_text, orphan=orphan
                )
        except BaseException as exc:
            run.abort(exc)
            raise

        run.advance(UploadState.DONE)
        return video

    async def _persist(
        self,
        run: UploadRun,
        video_id: str,
        field: MediaField,
        reference: str,
        *,
        orphan: dict[str, Any],
    ) -> Video:
        try:
            return await self.store.update_media_reference(video_id, field, reference)
        except PersistenceError:
            run.log.error("Stored media is not referenced by any record", extra=orphan)
            raise


__all__ = [
    "IncomingFile",
    "ReceiveFile",
    "UploadOrchestrator",
    "UploadRun",
    "UploadState",
]
