"""
Local Staging Manager

Buffers an inbound upload to a uniquely named temporary file so the rest of
the pipeline can hand a real path to ffmpeg and boto3. The file exists only
for the lifetime of the ``stage()`` context and is removed on every exit
path: success, validation failure, I/O error or task cancellation.
"""

import logging
import os
import tempfile

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Protocol

import aiofiles

from vidvault.core.errors import PayloadTooLarge, StagingIOError


logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
STAGING_PREFIX = "vidvault-"


class AsyncReadable(Protocol):
    """Anything with an awaitable ``read(size)``, e.g. Starlette's UploadFile."""

    async def read(self, size: int = -1) -> bytes: ...


@dataclass(frozen=True)
class StagedFile:
    """A fully written staging file."""

    path: Path
    size: int
    content_type: str = ""

    def open(self) -> BinaryIO:
        """Open a fresh read handle positioned at offset 0."""
        return self.path.open("rb")


def discard_file(path: Path) -> None:
    """Remove a scratch file; a file that is already gone is not an error."""
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.warning("Failed to remove scratch file: %s", path, exc_info=True)
    else:
        logger.debug("Removed scratch file: %s", path)


async def _copy_to_disk(source: AsyncReadable, path: Path, max_bytes: int) -> int:
    written = 0
    async with aiofiles.open(path, "wb") as out:
        while chunk := await source.read(CHUNK_SIZE):
            written += len(chunk)
            if written > max_bytes:
                raise PayloadTooLarge(
                    f"Upload exceeds the maximum size of {max_bytes} bytes",
                    details={"max_bytes": max_bytes},
                )
            await out.write(chunk)
    return written


@asynccontextmanager
async def stage(
    source: AsyncReadable,
    *,
    max_bytes: int,
    suffix: str = "",
    content_type: str = "",
    directory: Path | None = None,
) -> AsyncIterator[StagedFile]:
    """
    Copy ``source`` to a temporary file and yield it.

    Args:
        source: Async byte stream to drain.
        max_bytes: Size cap; exceeding it aborts the copy.
        suffix: File name suffix, e.g. ``".mp4"``.
        content_type: Declared content type, carried along on the result.
        directory: Where to create the file, defaults to the system temp dir.

    Yields:
        StagedFile: The written file.

    Raises:
        PayloadTooLarge: If the stream is longer than ``max_bytes``.
        StagingIOError: If the file cannot be created, written or the source
            cannot be read.

    Example:
        ```python
        async with stage(upload, max_bytes=10 * 1024 * 1024, suffix=".png") as staged:
            await storage.upload_file(staged.path, key, staged.content_type)
        ```
    """
    try:
        fd, name = tempfile.mkstemp(prefix=STAGING_PREFIX, suffix=suffix, dir=directory)
    except OSError as exc:
        raise StagingIOError("Unable to create staging file") from exc
    os.close(fd)
    path = Path(name)

    try:
        try:
            size = await _copy_to_disk(source, path, max_bytes)
        except OSError as exc:
            raise StagingIOError("Unable to write staging file") from exc

        logger.debug("Staged %d bytes to %s", size, path)
        yield StagedFile(path=path, size=size, content_type=content_type)
    finally:
        discard_file(path)
