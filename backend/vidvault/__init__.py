"""
VidVault Backend Application Package

FastAPI service that ingests videos and thumbnails for video records:

- Authorizes the uploader against the owning user of the record
- Stages the upload to local disk with a hard size cap
- Rewrites videos for progressive playback (ffmpeg stream copy, fast-start)
- Classifies orientation from the probed display aspect ratio
- Stores the bytes in S3-compatible object storage under a random key
- Persists a bucket/key reference and signs short-lived URLs on read

Package Structure:
- api/: REST API endpoints organized by version (v1)
- core/: Core infrastructure (database, storage, auth, error taxonomy)
- models/: Pydantic data models (videos, users, stored media references)
- services/: Upload pipeline steps and the orchestrator
- utils/: Logging helpers
"""

__version__ = "1.0.0"
__app_name__ = "VidVault"
