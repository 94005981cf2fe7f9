"""
ffmpeg / ffprobe integration

The pipeline only needs two things from the external media tools, so they
sit behind the ``MediaToolkit`` protocol:

- ``remux(input, output)``: stream-copy the container and move the ``moov``
  atom to the front (``-movflags faststart``), no re-encoding
- ``probe(path)``: ffprobe's JSON stream report

``FFmpegToolkit`` is the real implementation. Tests substitute a fake that
returns canned reports or raises the mapped errors.

Error mapping:
- binary not on PATH / not executable -> ExternalToolMissing
- non-zero exit or timeout -> ExternalToolError (exit code and stderr kept)
"""

import asyncio
import logging
import shutil

from contextlib import suppress
from pathlib import Path
from typing import Protocol

from vidvault.config import Settings
from vidvault.core.errors import ExternalToolError, ExternalToolMissing


logger = logging.getLogger(__name__)

FASTSTART_SUFFIX = "-faststart.mp4"
STDERR_TAIL_CHARS = 2000
VERSION_CHECK_TIMEOUT_SECONDS = 10.0


class MediaToolkit(Protocol):
    """Narrow interface over the external media tools."""

    async def remux(self, input_path: Path, output_path: Path) -> None: ...

    async def probe(self, path: Path) -> bytes: ...


def faststart_output_path(input_path: Path) -> Path:
    """Sibling path for the rewritten file: ``clip.mp4`` -> ``clip-faststart.mp4``."""
    return input_path.with_name(input_path.stem + FASTSTART_SUFFIX)


async def rewrite_for_progressive_playback(toolkit: MediaToolkit, input_path: Path) -> Path:
    """
    Rewrite a staged video so playback can start before the download completes.

    The caller owns the returned file and must delete it. On failure any
    partial output is removed before the error propagates.

    Args:
        toolkit: Media tool implementation.
        input_path: Staged upload.

    Returns:
        Path: The fast-start copy next to ``input_path``.

    Raises:
        ExternalToolMissing: If ffmpeg cannot be located.
        ExternalToolError: If ffmpeg fails or times out.
    """
    output_path = faststart_output_path(input_path)
    try:
        await toolkit.remux(input_path, output_path)
    except BaseException:
        output_path.unlink(missing_ok=True)
        raise
    return output_path


class FFmpegToolkit:
    """
    MediaToolkit backed by the ffmpeg and ffprobe binaries.

    Attributes:
        ffmpeg: Configured ffmpeg name or path
        ffprobe: Configured ffprobe name or path
        timeout: Upper bound for one invocation, in seconds
        required_version: Optional version prefix ffmpeg must report
    """

    def __init__(self, settings: Settings) -> None:
        self.ffmpeg = settings.ffmpeg_path
        self.ffprobe = settings.ffprobe_path
        self.timeout = settings.media_tool_timeout_seconds
        self.required_version = settings.ffmpeg_required_version

    async def remux(self, input_path: Path, output_path: Path) -> None:
        await self._run(
            self.ffmpeg,
            [
                "-nostdin",
                "-y",
                "-v",
                "error",
                "-i",
                str(input_path),
                "-c",
                "copy",
                "-movflags",
                "faststart",
                "-f",
                "mp4",
                str(output_path),
            ],
        )
        logger.info("Rewrote video for fast start: %s", output_path)

    async def probe(self, path: Path) -> bytes:
        return await self._run(
            self.ffprobe,
            [
                "-v",
                "error",
                "-show_streams",
                str(path),
                "-show_entries",
                "stream=display_aspect_ratio",
                "-print_format",
                "json",
            ],
        )

    async def describe(self) -> dict[str, str | None]:
        """
        Report the version line of each tool, None for tools that are missing.

        Raises:
            ExternalToolError: If ``required_version`` is set and the installed
                ffmpeg does not match it.
        """
        versions: dict[str, str | None] = {}
        for tool in (self.ffmpeg, self.ffprobe):
            try:
                output = await self._run(tool, ["-version"], timeout=VERSION_CHECK_TIMEOUT_SECONDS)
            except ExternalToolMissing:
                logger.warning("Media tool not found: %s", tool)
                versions[tool] = None
                continue
            lines = output.decode("utf-8", errors="replace").splitlines()
            versions[tool] = lines[0] if lines else ""

        if self.required_version:
            ffmpeg_version = _parse_version(versions.get(self.ffmpeg))
            if ffmpeg_version is None or not ffmpeg_version.startswith(self.required_version):
                raise ExternalToolError(
                    f"ffmpeg {self.required_version} required, found {ffmpeg_version or 'none'}",
                    tool=self.ffmpeg,
                )

        return versions

    def _resolve(self, tool: str) -> str:
        resolved = shutil.which(tool)
        if resolved is None:
            raise ExternalToolMissing(f"{tool} is not installed or not on PATH", tool=tool)
        return resolved

    async def _run(self, tool: str, args: list[str], timeout: float | None = None) -> bytes:
        command = [self._resolve(tool), *args]
        limit = timeout or self.timeout
        logger.debug("Running media tool: %s", " ".join(command))

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise ExternalToolMissing(f"{tool} could not be executed", tool=tool) from exc
        except PermissionError as exc:
            raise ExternalToolMissing(f"{tool} is not executable", tool=tool) from exc

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=limit)
        except TimeoutError as exc:
            await _kill(process)
            logger.error("%s timed out after %.0f seconds", tool, limit)
            raise ExternalToolError(f"{tool} timed out after {limit:.0f} seconds", tool=tool) from exc
        except asyncio.CancelledError:
            # The child must be gone before callers remove its output file
            await _kill(process)
            raise

        if process.returncode != 0:
            tail = _tail(stderr)
            logger.error(
                "%s exited with code %d",
                tool,
                process.returncode,
                extra={"tool": tool, "returncode": process.returncode, "stderr": tail},
            )
            raise ExternalToolError(
                f"{tool} exited with code {process.returncode}",
                tool=tool,
                returncode=process.returncode,
                stderr=tail,
            )

        return stdout


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        with suppress(ProcessLookupError):
            process.kill()
        await process.wait()


def _tail(stream: bytes | None) -> str:
    if not stream:
        return ""
    return stream.decode("utf-8", errors="replace")[-STDERR_TAIL_CHARS:]


def _parse_version(version_line: str | None) -> str | None:
    # "ffmpeg version 6.1.1-3ubuntu5 Copyright ..." -> "6.1.1-3ubuntu5"
    if not version_line:
        return None
    parts = version_line.split()
    if len(parts) >= 3 and parts[1] == "version":
        return parts[2]
    return None
