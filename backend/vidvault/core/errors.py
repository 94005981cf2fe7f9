"""
VidVault Error Taxonomy

Every failure the upload and read pipelines can surface is one of the
exceptions below. Each class carries the HTTP status and the machine-readable
error code used by the exception handler in ``vidvault.main``; services raise
them and never build HTTP responses themselves.

Server-side failures (status >= 500) keep their distinct codes for logs and
metrics, but clients only ever see a generic message for them.
"""

from typing import Any

from fastapi import status


class VidVaultError(Exception):
    """Base exception for all upload and read pipeline errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "server_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def is_server_error(self) -> bool:
        return self.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR


# =============================================================================
# Client errors
# =============================================================================


class BadIdentifier(VidVaultError):
    """Raised when a path identifier is not a valid UUID."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "invalid_id"


class MissingFormField(VidVaultError):
    """Raised when the multipart body lacks the expected file field."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "missing_file"


class Unauthenticated(VidVaultError):
    """Raised when the bearer credential is missing, invalid or names no user."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "unauthenticated"


class Forbidden(VidVaultError):
    """Raised when an authenticated user does not own the target record."""

    status_code = status.HTTP_403_FORBIDDEN
    error_code = "forbidden"


class NotFound(VidVaultError):
    """Raised when the target record does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"


class UnsupportedMediaType(VidVaultError):
    """Raised when the declared content type is not acceptable."""

    status_code = status.HTTP_406_NOT_ACCEPTABLE
    error_code = "unsupported_media_type"


class InvalidMediaType(UnsupportedMediaType):
    """Raised when the declared content type is not a single kind/subtype pair."""

    error_code = "invalid_media_type"


class WrongMediaKind(UnsupportedMediaType):
    """Raised when the declared kind (image, video) is not the expected one."""

    error_code = "wrong_media_kind"


class PayloadTooLarge(VidVaultError):
    """Raised when an upload exceeds its size cap."""

    status_code = status.HTTP_413_CONTENT_TOO_LARGE
    error_code = "payload_too_large"


# =============================================================================
# Server errors
# =============================================================================


class StagingIOError(VidVaultError):
    """Raised when writing or reading a local file fails."""

    error_code = "staging_failed"


class ExternalToolError(VidVaultError):
    """Raised when ffmpeg/ffprobe exits non-zero or times out."""

    error_code = "media_tool_failed"

    def __init__(
        self,
        message: str,
        *,
        tool: str,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(
            message,
            details={"tool": tool, "returncode": returncode, "stderr": stderr},
        )
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr


class ExternalToolMissing(ExternalToolError):
    """Raised when ffmpeg/ffprobe cannot be located or executed."""

    error_code = "media_tool_missing"


class MediaProbeError(VidVaultError):
    """Raised when a probe report cannot be interpreted."""

    error_code = "probe_failed"


class NoStreamsFound(MediaProbeError):
    """Raised when a probe report lists zero streams."""

    error_code = "no_streams"


class UploadError(VidVaultError):
    """Raised when the object store rejects or fails an upload."""

    error_code = "upload_failed"


class PersistenceError(VidVaultError):
    """Raised when the record store cannot be read or updated."""

    error_code = "persistence_failed"


class MalformedReference(VidVaultError):
    """Raised when a stored media reference cannot be parsed."""

    error_code = "malformed_reference"


class ReferenceMismatch(VidVaultError):
    """Raised when a stored reference names a bucket other than the configured one."""

    error_code = "reference_mismatch"


class SigningError(VidVaultError):
    """Raised when a signed retrieval URL cannot be generated."""

    error_code = "signing_failed"
