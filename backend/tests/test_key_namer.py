"""
Tests for object key derivation.
"""

import re

import pytest

from vidvault.services.key_namer import derive_thumbnail_key, derive_video_key
from vidvault.services.media_classifier import AspectClassification


VIDEO_KEY_PATTERN = re.compile(r"^(landscape|portrait|other)/[0-9a-f]{64}\.[a-z0-9+.-]+$")


@pytest.mark.parametrize("orientation", list(AspectClassification))
def test_video_key_layout(orientation: AspectClassification) -> None:
    key = derive_video_key(orientation, "mp4")

    assert VIDEO_KEY_PATTERN.match(key)
    assert key.startswith(f"{orientation.value}/")
    assert key.endswith(".mp4")


def test_video_keys_do_not_repeat() -> None:
    keys = {derive_video_key(AspectClassification.LANDSCAPE, "mp4") for _ in range(10_000)}
    assert len(keys) == 10_000


def test_thumbnail_key_is_deterministic() -> None:
    video_id = "0b6a3c2e-8c1f-4c55-9a57-0a7f2f4bb0d1"
    assert derive_thumbnail_key(video_id, "png") == f"{video_id}.png"
    assert derive_thumbnail_key(video_id, "png") == derive_thumbnail_key(video_id, "png")


def test_thumbnail_key_with_prefix() -> None:
    video_id = "0b6a3c2e-8c1f-4c55-9a57-0a7f2f4bb0d1"
    assert derive_thumbnail_key(video_id, "jpeg", prefix="thumbnails") == (
        f"thumbnails/{video_id}.jpeg"
    )
