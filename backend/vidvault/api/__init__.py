"""
VidVault API Package.

The API is organized by version:
    - v1/: Version 1 endpoints
        - upload.py: Thumbnail and video uploads
        - videos.py: Video reads with signed URLs, thumbnail resolution
"""
