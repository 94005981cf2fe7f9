"""
VidVault Configuration Management Module

This module provides configuration management for the VidVault upload service
using Pydantic Settings. It loads and validates all environment variables required for:
- Application settings (name, environment, debug mode, logging)
- Bearer token validation (shared secret, algorithm)
- MongoDB database connection and pooling
- S3/MinIO object storage and signed URL lifetime
- ffmpeg/ffprobe location, version pin and timeouts
- Upload size caps and staging directory
- Thumbnail storage mode and public asset paths

All settings support environment variable overrides and .env file loading with
validation and type safety.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


MIB = 1024 * 1024
GIB = 1024 * MIB

# S3 SigV4 presigned URLs cannot outlive seven days
MAX_SIGNED_URL_TTL_SECONDS = 7 * 24 * 3600


class Settings(BaseSettings):
    """
    Configuration settings for the VidVault service.

    Loads configuration from environment variables and .env files with full
    type validation. Every field has a development-friendly default so the
    application and the test suite can start without an environment file.

    Configuration Categories:
    - Application: Core app settings like name, environment, debug mode
    - Auth: Bearer token secret and algorithm
    - MongoDB: Database connection URI and connection pool settings
    - S3/MinIO: Object storage credentials, bucket and signing lifetime
    - Media tools: ffmpeg/ffprobe binaries and process limits
    - Upload: Size caps and staging location
    - Thumbnails: Local disk or object storage, public URL layout

    Example usage:
        ```python
        from vidvault.config import Settings

        settings = Settings()
        print(f"Uploading to bucket: {settings.s3_bucket_name}")
        ```
    """

    # =========================================================================
    # Application Settings
    # =========================================================================

    app_name: str = Field(
        default="VidVault",
        description="Application name displayed in API documentation and logs",
    )

    app_env: str = Field(
        default="development",
        description="Application environment (development, staging, production, testing)",
    )

    debug: bool = Field(default=False, description="Enable debug mode and verbose logging")

    log_level: str = Field(
        default="info", description="Logging level (debug, info, warning, error, critical)"
    )

    json_logs: bool = Field(
        default=True, description="Emit structured JSON logs instead of plain text"
    )

    host: str = Field(default="0.0.0.0", description="Host address for the API server to bind to")

    port: int = Field(default=8091, description="Port number for the API server", ge=1, le=65535)

    cors_origins: list[str] = Field(
        default=["http://localhost:8091"],
        description="List of allowed CORS origins for browser clients",
    )

    # =========================================================================
    # Auth Settings
    # =========================================================================

    secret_key: str = Field(
        default="development-secret-key-change-in-production-32chars",
        description="Shared secret used to verify bearer JWTs. Must be a secure random string.",
        min_length=32,
    )

    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm (HMAC family)")

    # =========================================================================
    # MongoDB Configuration
    # =========================================================================

    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI (e.g., mongodb://localhost:27017)",
    )

    mongodb_db_name: str = Field(
        default="vidvault", description="MongoDB database holding the videos and users collections"
    )

    mongodb_min_pool_size: int = Field(
        default=1, description="Minimum number of connections in MongoDB connection pool", ge=0
    )

    mongodb_max_pool_size: int = Field(
        default=50, description="Maximum number of connections in MongoDB connection pool", ge=1
    )

    # =========================================================================
    # S3/MinIO Storage Configuration
    # =========================================================================

    s3_endpoint_url: str | None = Field(
        default=None, description="S3-compatible endpoint URL for MinIO (None for AWS S3)"
    )

    s3_access_key_id: str | None = Field(
        default=None,
        description="Access key ID (None uses the default AWS credential chain)",
    )

    s3_secret_access_key: str | None = Field(
        default=None,
        description="Secret access key (None uses the default AWS credential chain)",
    )

    s3_bucket_name: str = Field(
        default="vidvault-media",
        description="Bucket holding uploaded videos and remote thumbnails",
        min_length=3,
        max_length=63,
    )

    s3_region: str = Field(default="us-east-1", description="Region of the S3 bucket")

    s3_thumbnail_prefix: str = Field(
        default="thumbnails",
        description="Key prefix for thumbnails when thumbnail_storage is 's3'",
    )

    s3_multipart_threshold_mb: int = Field(
        default=64,
        description="Files above this size are sent with a multipart upload",
        ge=5,
        le=5120,
    )

    check_bucket_on_startup: bool = Field(
        default=True, description="Issue HeadBucket at startup and refuse to start on failure"
    )

    signed_url_ttl_seconds: int = Field(
        default=900,
        description="Lifetime of signed retrieval URLs in seconds (15 minutes)",
        ge=60,
        le=MAX_SIGNED_URL_TTL_SECONDS,
    )

    # =========================================================================
    # Media Tool Settings
    # =========================================================================

    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg binary name or absolute path")

    ffprobe_path: str = Field(default="ffprobe", description="ffprobe binary name or absolute path")

    ffmpeg_required_version: str | None = Field(
        default=None,
        description="Required ffmpeg version prefix (e.g. '6.1'). Startup fails on mismatch.",
    )

    media_tool_timeout_seconds: float = Field(
        default=600.0,
        description="Upper bound for a single ffmpeg/ffprobe invocation",
        gt=0,
    )

    # =========================================================================
    # Upload Settings
    # =========================================================================

    max_thumbnail_upload_bytes: int = Field(
        default=10 * MIB, description="Maximum thumbnail size in bytes (10 MiB)", ge=1
    )

    max_video_upload_bytes: int = Field(
        default=10 * GIB, description="Maximum video size in bytes (10 GiB)", ge=1
    )

    staging_dir: Path | None = Field(
        default=None, description="Directory for staging files (None uses the system temp dir)"
    )

    # =========================================================================
    # Thumbnail Settings
    # =========================================================================

    thumbnail_storage: str = Field(
        default="local", description="Where thumbnails are written: 'local' or 's3'"
    )

    assets_root: Path = Field(
        default=Path("assets"), description="Directory served publicly under assets_url_prefix"
    )

    assets_url_prefix: str = Field(
        default="/assets", description="Public URL path prefix for files in assets_root"
    )

    public_base_url: str | None = Field(
        default=None,
        description="Absolute base URL prepended to local asset paths on read (e.g. https://cdn.example.com)",
    )

    # =========================================================================
    # Model Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"debug", "info", "warning", "error", "critical"}
        normalized = v.lower()
        if normalized not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {', '.join(valid_levels)}")
        return normalized

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate that app_env is a valid environment name."""
        valid_envs = {"development", "staging", "production", "testing"}
        normalized = v.lower()
        if normalized not in valid_envs:
            raise ValueError(f"Invalid app_env '{v}'. Must be one of: {', '.join(valid_envs)}")
        return normalized

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        """Only shared-secret algorithms make sense with secret_key."""
        valid_algorithms = {"HS256", "HS384", "HS512"}
        if v.upper() not in valid_algorithms:
            raise ValueError(
                f"Invalid jwt_algorithm '{v}'. Must be one of: {', '.join(sorted(valid_algorithms))}"
            )
        return v.upper()

    @field_validator("thumbnail_storage")
    @classmethod
    def validate_thumbnail_storage(cls, v: str) -> str:
        """Validate that thumbnail_storage names a supported backend."""
        normalized = v.lower()
        if normalized not in {"local", "s3"}:
            raise ValueError(f"Invalid thumbnail_storage '{v}'. Must be 'local' or 's3'")
        return normalized

    @field_validator("assets_url_prefix")
    @classmethod
    def validate_assets_url_prefix(cls, v: str) -> str:
        """Normalize to a leading slash and no trailing slash."""
        return "/" + v.strip("/")

    @field_validator("s3_thumbnail_prefix")
    @classmethod
    def validate_thumbnail_prefix(cls, v: str) -> str:
        return v.strip("/")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from comma-separated string if provided as string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def s3_multipart_threshold_bytes(self) -> int:
        """Multipart threshold converted to bytes for boto3's TransferConfig."""
        return self.s3_multipart_threshold_mb * MIB

    @property
    def stores_thumbnails_locally(self) -> bool:
        return self.thumbnail_storage == "local"


@lru_cache
def get_settings() -> Settings:
    """
    Get the global Settings instance.

    Configuration is loaded once on first call and the cached instance is
    returned afterwards. Route dependencies use this through ``Depends`` so
    tests can swap it with ``app.dependency_overrides``.

    Returns:
        Settings: The global configuration instance.
    """
    return Settings()
