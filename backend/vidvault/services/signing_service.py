"""
Signed URL Issuer

Turns stored media references into URLs a client can fetch. Remote objects
get a fresh presigned GET URL on every read; nothing here is cached or
written back to the record.
"""

import logging

from datetime import timedelta

from vidvault.config import Settings
from vidvault.core.errors import ReferenceMismatch, SigningError
from vidvault.core.storage import StorageClient
from vidvault.models.reference import (
    Inline,
    LocalFile,
    RemoteObject,
    StoredMediaReference,
    parse_reference,
)
from vidvault.models.video import Video, VideoResponse


logger = logging.getLogger(__name__)


class SignedUrlIssuer:
    """
    Resolve stored references into retrieval URLs.

    Attributes:
        storage: Storage client used for presigning
        bucket_name: The only bucket remote references may point at
        default_ttl: Lifetime used when no TTL is passed
        public_base_url: Optional origin prepended to relative local paths
    """

    def __init__(self, storage: StorageClient, settings: Settings) -> None:
        self.storage = storage
        self.bucket_name = settings.s3_bucket_name
        self.default_ttl = settings.signed_url_ttl_seconds
        self.public_base_url = (settings.public_base_url or "").rstrip("/") or None

    def issue_signed_url(self, bucket: str, key: str, ttl: int | timedelta | None = None) -> str:
        """
        Mint a time-bounded GET URL for one object.

        Args:
            bucket: Bucket of the object.
            key: Object key.
            ttl: Lifetime as seconds or timedelta, defaults to the configured TTL.

        Returns:
            str: The presigned URL.

        Raises:
            SigningError: If the TTL is out of range or signing fails.
        """
        if ttl is None:
            expires_in = self.default_ttl
        elif isinstance(ttl, timedelta):
            expires_in = int(ttl.total_seconds())
        else:
            expires_in = ttl

        try:
            return self.storage.generate_presigned_download_url(key, expires_in, bucket=bucket)
        except ValueError as exc:
            raise SigningError(str(exc), details={"key": key}) from exc

    def resolve_reference(self, raw: str | None) -> str | None:
        """
        Resolve persisted reference text into a client-facing URL.

        Args:
            raw: Stored ``video_url`` or ``thumbnail_url`` value.

        Returns:
            The URL to hand out, or None when nothing is stored.

        Raises:
            MalformedReference: If the text cannot be parsed.
            ReferenceMismatch: If a remote reference names another bucket.
            SigningError: If the presigned URL cannot be generated.
        """
        if not raw:
            return None

        reference: StoredMediaReference = parse_reference(raw)

        if isinstance(reference, RemoteObject):
            if reference.bucket != self.bucket_name:
                logger.error(
                    "Stored reference points at an unexpected bucket",
                    extra={"bucket": reference.bucket, "expected_bucket": self.bucket_name},
                )
                raise ReferenceMismatch(
                    "Stored reference does not match the configured bucket",
                    details={"bucket": reference.bucket},
                )
            return self.issue_signed_url(reference.bucket, reference.key)

        if isinstance(reference, LocalFile):
            if reference.is_absolute_url or self.public_base_url is None:
                return reference.path
            return f"{self.public_base_url}{reference.path}"

        if isinstance(reference, Inline):
            return reference.to_wire()

        raise TypeError(f"Unhandled reference type: {type(reference).__name__}")

    def sign_video(self, video: Video) -> VideoResponse:
        """Build the read response for a record with both references resolved."""
        return VideoResponse.from_video(
            video,
            video_url=self.resolve_reference(video.video_url),
            thumbnail_url=self.resolve_reference(video.thumbnail_url),
        )
