"""
Object key derivation.

Video keys are random and namespaced by orientation so every upload lands on
a fresh key. Thumbnail keys are derived from the record id so a re-upload
replaces the previous thumbnail.
"""

import secrets

from vidvault.services.media_classifier import AspectClassification


# 32 random bytes, rendered as 64 lowercase hex characters
VIDEO_KEY_ENTROPY_BYTES = 32


def derive_video_key(orientation: AspectClassification, extension: str) -> str:
    """
    Build a collision-resistant key for a video object.

    Args:
        orientation: Aspect classification of the rewritten file.
        extension: Subtype returned by ``classify_media_type``.

    Returns:
        str: ``"{orientation}/{hex}.{extension}"``, e.g.
        ``"landscape/9f86d0...0f00a08.mp4"``.
    """
    token = secrets.token_hex(VIDEO_KEY_ENTROPY_BYTES)
    return f"{orientation.value}/{token}.{extension}"


def derive_thumbnail_key(video_id: str, extension: str, prefix: str = "") -> str:
    """Deterministic thumbnail name, ``"{prefix}/{video_id}.{extension}"`` when prefixed."""
    name = f"{video_id}.{extension}"
    return f"{prefix}/{name}" if prefix else name
