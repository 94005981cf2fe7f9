"""
Media Classifier

Two pure functions used by the upload pipeline:

- ``classify_media_type`` validates a declared Content-Type against the kind
  of upload (image for thumbnails, video for videos) and returns the subtype,
  which becomes the file extension of the stored object.
- ``classify_aspect_ratio`` reads an ffprobe JSON report and maps the first
  stream's display aspect ratio onto an orientation category.

Neither function touches disk or the network.
"""

import json
import re

from enum import Enum

from vidvault.core.errors import InvalidMediaType, MediaProbeError, NoStreamsFound, WrongMediaKind


# RFC 6838 restricted-name characters; the subtype ends up in object keys and file names
SUBTYPE_PATTERN = re.compile(r"^[a-z0-9][a-z0-9!#$&^_.+-]{0,126}$")


class MediaKind(str, Enum):
    """Top-level media kinds accepted by the upload endpoints."""

    IMAGE = "image"
    VIDEO = "video"


class AspectClassification(str, Enum):
    """Orientation category used to namespace stored videos."""

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


ASPECT_RATIO_CATEGORIES: dict[str, AspectClassification] = {
    "16:9": AspectClassification.LANDSCAPE,
    "9:16": AspectClassification.PORTRAIT,
}


def classify_media_type(declared_content_type: str, expected_kind: MediaKind) -> str:
    """
    Validate a declared content type and return its subtype as an extension.

    Media type parameters (``; codecs=...``) are ignored and the comparison is
    case-insensitive.

    Args:
        declared_content_type: Content-Type sent with the uploaded file part.
        expected_kind: Kind the endpoint accepts.

    Returns:
        str: The lower-cased subtype, e.g. ``"mp4"`` for ``"video/mp4"``.

    Raises:
        InvalidMediaType: If the value is not exactly one ``kind/subtype`` pair
            or the subtype contains characters unsafe for a file extension.
        WrongMediaKind: If the kind is not ``expected_kind``.

    Example:
        >>> classify_media_type("image/png", MediaKind.IMAGE)
        'png'
    """
    media_type = (declared_content_type or "").split(";", 1)[0].strip().lower()
    parts = media_type.split("/")

    if len(parts) != 2 or not all(parts):
        raise InvalidMediaType(
            f"Not a valid {expected_kind.value} media type",
            details={"content_type": declared_content_type},
        )

    kind, subtype = parts
    if not SUBTYPE_PATTERN.match(subtype):
        raise InvalidMediaType(
            f"Unsupported {expected_kind.value} subtype",
            details={"content_type": declared_content_type},
        )

    if kind != expected_kind.value:
        raise WrongMediaKind(
            f"Expected a {expected_kind.value} upload, got {kind}",
            details={"content_type": declared_content_type},
        )

    return subtype


def classify_aspect_ratio(probe_output: bytes | str) -> AspectClassification:
    """
    Classify orientation from an ffprobe ``-print_format json`` report.

    Only the first stream is inspected. Unknown, missing or malformed ratio
    strings fall back to ``OTHER``; an empty stream list is an error.

    Args:
        probe_output: Raw stdout of ffprobe.

    Returns:
        AspectClassification: landscape for ``16:9``, portrait for ``9:16``,
        other for anything else.

    Raises:
        MediaProbeError: If the report is not a JSON object.
        NoStreamsFound: If the report lists no streams.
    """
    try:
        report = json.loads(probe_output)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MediaProbeError("Probe report is not valid JSON") from exc

    if not isinstance(report, dict):
        raise MediaProbeError("Probe report is not a JSON object")

    streams = report.get("streams")
    if not isinstance(streams, list) or not streams:
        raise NoStreamsFound("No streams found in media file")

    first_stream = streams[0]
    ratio = first_stream.get("display_aspect_ratio") if isinstance(first_stream, dict) else None
    if not isinstance(ratio, str):
        return AspectClassification.OTHER

    return ASPECT_RATIO_CATEGORIES.get(ratio, AspectClassification.OTHER)
