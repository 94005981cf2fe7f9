"""
Tests for the media classifier: declared content types and probe reports.
"""

import pytest

from conftest import probe_report

from vidvault.core.errors import (
    InvalidMediaType,
    MediaProbeError,
    NoStreamsFound,
    UnsupportedMediaType,
    WrongMediaKind,
)
from vidvault.services.media_classifier import (
    AspectClassification,
    MediaKind,
    classify_aspect_ratio,
    classify_media_type,
)


# ==============================================================================
# classify_media_type
# ==============================================================================


class TestClassifyMediaType:
    """Declared Content-Type validation."""

    @pytest.mark.parametrize(
        ("declared", "kind", "expected"),
        [
            ("image/png", MediaKind.IMAGE, "png"),
            ("image/jpeg", MediaKind.IMAGE, "jpeg"),
            ("video/mp4", MediaKind.VIDEO, "mp4"),
            ("video/quicktime", MediaKind.VIDEO, "quicktime"),
            ("image/svg+xml", MediaKind.IMAGE, "svg+xml"),
        ],
    )
    def test_accepts_matching_kind(self, declared: str, kind: MediaKind, expected: str) -> None:
        assert classify_media_type(declared, kind) == expected

    def test_strips_parameters_and_normalizes_case(self) -> None:
        assert classify_media_type(' Video/MP4; codecs="avc1.42E01E"', MediaKind.VIDEO) == "mp4"

    def test_rejects_wrong_kind(self) -> None:
        with pytest.raises(WrongMediaKind) as exc_info:
            classify_media_type("application/pdf", MediaKind.VIDEO)

        assert exc_info.value.status_code == 406
        assert exc_info.value.error_code == "wrong_media_kind"

    def test_video_for_thumbnail_is_rejected(self) -> None:
        with pytest.raises(WrongMediaKind):
            classify_media_type("video/mp4", MediaKind.IMAGE)

    @pytest.mark.parametrize("declared", ["", "   ", "image", "image/", "/png", "image/png/extra"])
    def test_rejects_malformed_values(self, declared: str) -> None:
        with pytest.raises(InvalidMediaType):
            classify_media_type(declared, MediaKind.IMAGE)

    def test_none_is_treated_as_empty(self) -> None:
        with pytest.raises(UnsupportedMediaType):
            classify_media_type(None, MediaKind.IMAGE)  # type: ignore[arg-type]

    @pytest.mark.parametrize("subtype", ["../etc", "png\\x", "p ng", "-png"])
    def test_rejects_subtypes_unsafe_for_file_names(self, subtype: str) -> None:
        with pytest.raises(InvalidMediaType):
            classify_media_type(f"image/{subtype}", MediaKind.IMAGE)

    def test_all_rejections_map_to_406(self) -> None:
        assert issubclass(InvalidMediaType, UnsupportedMediaType)
        assert issubclass(WrongMediaKind, UnsupportedMediaType)
        assert UnsupportedMediaType.status_code == 406


# ==============================================================================
# classify_aspect_ratio
# ==============================================================================


class TestClassifyAspectRatio:
    """Orientation from ffprobe output."""

    def test_landscape(self) -> None:
        assert classify_aspect_ratio(probe_report("16:9")) is AspectClassification.LANDSCAPE

    def test_portrait(self) -> None:
        assert classify_aspect_ratio(probe_report("9:16")) is AspectClassification.PORTRAIT

    @pytest.mark.parametrize("ratio", ["4:3", "1:1", "16:10", "", "N/A", "32:18"])
    def test_other_ratios(self, ratio: str) -> None:
        assert classify_aspect_ratio(probe_report(ratio)) is AspectClassification.OTHER

    def test_missing_ratio_is_other(self) -> None:
        assert classify_aspect_ratio(probe_report(None)) is AspectClassification.OTHER

    def test_non_string_ratio_is_other(self) -> None:
        report = b'{"streams": [{"display_aspect_ratio": 1.77}]}'
        assert classify_aspect_ratio(report) is AspectClassification.OTHER

    def test_only_first_stream_counts(self) -> None:
        assert classify_aspect_ratio(probe_report("4:3", "16:9")) is AspectClassification.OTHER
        assert classify_aspect_ratio(probe_report("9:16", "16:9")) is AspectClassification.PORTRAIT

    def test_accepts_text_input(self) -> None:
        report = '{"streams": [{"display_aspect_ratio": "16:9"}]}'
        assert classify_aspect_ratio(report) is AspectClassification.LANDSCAPE

    def test_empty_stream_list(self) -> None:
        with pytest.raises(NoStreamsFound) as exc_info:
            classify_aspect_ratio(b'{"streams": []}')

        assert exc_info.value.status_code == 500

    def test_missing_stream_list(self) -> None:
        with pytest.raises(NoStreamsFound):
            classify_aspect_ratio(b"{}")

    @pytest.mark.parametrize("report", [b"", b"not json", b"[1, 2]", b"\xff\xfe"])
    def test_unreadable_report(self, report: bytes) -> None:
        with pytest.raises(MediaProbeError):
            classify_aspect_ratio(report)
