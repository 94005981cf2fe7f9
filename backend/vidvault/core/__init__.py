"""
Core infrastructure for the VidVault backend application.

This package contains the foundational components:
- auth: Bearer token validation (local HS256 JWT)
- database: MongoDB async client with Motor driver and connection pooling
- errors: Error taxonomy shared by services and the HTTP layer
- storage: S3-compatible storage client for uploads and signed URLs

Storage and database clients follow the singleton pattern and are created
once during application startup.
"""
