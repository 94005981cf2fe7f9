"""
Services module for the VidVault backend application.

Each step of the upload pipeline lives in its own module:

- media_classifier: content type and aspect ratio classification
- staging: size-capped staging of uploads to local disk
- media_tools: ffmpeg/ffprobe integration (fast-start rewrite, probing)
- key_namer: object key derivation
- video_store: video and user record access
- signing_service: read-time resolution of stored references
- upload_service: the orchestrator that sequences the steps above
"""
