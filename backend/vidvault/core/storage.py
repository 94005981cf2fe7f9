"""
VidVault S3-Compatible Storage Client

This module provides the storage layer using boto3. It supports MinIO (for
development) and AWS S3 (for production) through a configurable endpoint URL.

Key Features:
- Whole-object uploads through boto3's managed transfer (single PUT below the
  multipart threshold, multipart above it). Either way the key only becomes
  visible once the upload is fully acknowledged.
- Presigned GET URL generation with an explicit TTL
- Bucket reachability check for application startup
- Error mapping from botocore/boto3 exceptions to the VidVault taxonomy
- Singleton accessor for resource efficiency

Blocking boto3 calls that do network I/O are exposed as coroutines through
``async_wrap`` so request handlers never block the event loop.
"""

import asyncio
import logging

from collections.abc import Callable, Coroutine
from functools import wraps
from pathlib import Path
from typing import Any, TypeVar

import boto3

from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from vidvault.config import MAX_SIGNED_URL_TTL_SECONDS, Settings
from vidvault.core.errors import SigningError, UploadError


MIN_PRESIGNED_EXPIRATION_SECONDS = 60

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Using a dict container allows modification without global statement
_singleton_container: dict[str, "StorageClient"] = {}


def async_wrap(func: Callable[..., T]) -> Callable[..., Coroutine[Any, Any, T]]:
    """
    Decorator to wrap synchronous boto3 operations for async execution.

    Uses asyncio.to_thread to run blocking boto3 operations in a separate
    thread pool, preventing event loop blocking during S3 operations.

    Args:
        func: The synchronous function to wrap

    Returns:
        An async function that executes the original in a thread pool
    """

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(func, *args, **kwargs)

    return wrapper


class StorageClient:
    """
    S3-compatible storage client for video and thumbnail objects.

    Attributes:
        settings: Application settings containing S3 configuration
        s3_client: Initialized boto3 S3 client
        bucket_name: Configured bucket, the only bucket references may point at
        transfer_config: Managed transfer configuration for uploads

    Example usage:
        ```python
        storage = get_storage_client()

        await storage.upload_file(Path("/tmp/clip-faststart.mp4"), "landscape/ab12.mp4", "video/mp4")
        url = storage.generate_presigned_download_url("landscape/ab12.mp4", expires_in=900)
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """
        Initialize the S3 storage client with configuration from settings.

        Args:
            settings: Optional Settings instance. If None, creates a new Settings
                     instance from environment variables.
        """
        self.settings = settings or Settings()

        client_config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},  # Use path-style for MinIO compatibility
            retries={"max_attempts": 3, "mode": "standard"},
        )

        # None credentials fall through to boto3's default credential chain
        self.s3_client = boto3.client(
            "s3",
            endpoint_url=self.settings.s3_endpoint_url,
            aws_access_key_id=self.settings.s3_access_key_id,
            aws_secret_access_key=self.settings.s3_secret_access_key,
            region_name=self.settings.s3_region,
            config=client_config,
        )
        self.bucket_name = self.settings.s3_bucket_name
        self.transfer_config = TransferConfig(
            multipart_threshold=self.settings.s3_multipart_threshold_bytes,
        )

        logger.info(
            "S3 storage client initialized",
            extra={
                "bucket": self.bucket_name,
                "region": self.settings.s3_region,
                "endpoint": self.settings.s3_endpoint_url or "AWS S3 (default)",
            },
        )

    @async_wrap
    def check_bucket(self) -> None:
        """
        Verify that the configured bucket exists and is reachable.

        Raises:
            UploadError: If HeadBucket fails for any reason.
        """
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
        except (ClientError, BotoCoreError) as exc:
            logger.exception("Unable to access S3 bucket", extra={"bucket": self.bucket_name})
            raise UploadError(
                f"Unable to access bucket {self.bucket_name!r}",
                details={"bucket": self.bucket_name},
            ) from exc

        logger.info("S3 bucket is reachable", extra={"bucket": self.bucket_name})

    @async_wrap
    def upload_file(
        self,
        file_path: Path,
        key: str,
        content_type: str,
        bucket: str | None = None,
    ) -> None:
        """
        Upload a local file as one object.

        Args:
            file_path: Local file to upload.
            key: Destination object key.
            content_type: Content-Type stored with the object.
            bucket: Target bucket, defaults to the configured bucket.

        Raises:
            UploadError: On any transport, remote-side or local read failure.
        """
        target_bucket = bucket or self.bucket_name
        extra_args: dict[str, Any] = {}
        if content_type:
            extra_args["ContentType"] = content_type

        try:
            self.s3_client.upload_file(
                Filename=str(file_path),
                Bucket=target_bucket,
                Key=key,
                ExtraArgs=extra_args or None,
                Config=self.transfer_config,
            )
        except (ClientError, BotoCoreError, S3UploadFailedError, OSError) as exc:
            logger.exception(
                "Failed to upload object",
                extra={"bucket": target_bucket, "key": key},
            )
            raise UploadError(
                "Failed to upload object to storage",
                details={"bucket": target_bucket, "key": key},
            ) from exc

        logger.info(
            "Uploaded object",
            extra={"bucket": target_bucket, "key": key, "content_type": content_type},
        )

    def generate_presigned_download_url(
        self,
        key: str,
        expires_in: int,
        bucket: str | None = None,
    ) -> str:
        """
        Generate a presigned GET URL for exactly one object.

        Signing is a local computation, so this stays synchronous.

        Args:
            key: Object key to grant access to.
            expires_in: Lifetime in seconds, 60 up to 7 days.
            bucket: Bucket of the object, defaults to the configured bucket.

        Returns:
            str: Presigned GET URL.

        Raises:
            ValueError: If expires_in is outside the valid range.
            SigningError: If botocore cannot produce the URL.
        """
        if not MIN_PRESIGNED_EXPIRATION_SECONDS <= expires_in <= MAX_SIGNED_URL_TTL_SECONDS:
            raise ValueError(
                f"expires_in must be between {MIN_PRESIGNED_EXPIRATION_SECONDS} and "
                f"{MAX_SIGNED_URL_TTL_SECONDS} seconds, got {expires_in}"
            )

        target_bucket = bucket or self.bucket_name
        try:
            presigned_url = self.s3_client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": target_bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as exc:
            logger.exception(
                "Failed to generate presigned download URL",
                extra={"bucket": target_bucket, "key": key},
            )
            raise SigningError("Failed to sign retrieval URL", details={"key": key}) from exc

        logger.debug(
            "Generated presigned download URL",
            extra={"bucket": target_bucket, "key": key, "expires_in": expires_in},
        )
        return presigned_url


def get_storage_client() -> StorageClient:
    """
    Get the singleton StorageClient instance.

    The S3 client is thread-safe, so one instance is shared by all requests
    and worker threads.

    Returns:
        StorageClient: The shared storage client instance.
    """
    if "instance" not in _singleton_container:
        _singleton_container["instance"] = StorageClient()
        logger.info("Created new StorageClient singleton instance")

    return _singleton_container["instance"]


def init_storage(settings: Settings) -> StorageClient:
    """Create the singleton from explicit settings during application startup."""
    _singleton_container["instance"] = StorageClient(settings)
    return _singleton_container["instance"]
