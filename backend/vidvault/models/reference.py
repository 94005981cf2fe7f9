"""
Stored media reference models for VidVault.

A video record never stores a signed URL. It stores a reference that is
resolved on every read, in one of three shapes:

- ``RemoteObject``: ``"{bucket},{key}"``, split on the first comma only
- ``LocalFile``: a public path such as ``/assets/{video-id}.png`` or an
  absolute ``http(s)://`` URL
- ``Inline``: a ``data:{content-type};base64,...`` URI

``parse_reference`` turns the persisted text into the matching model and
``RemoteObject.to_wire()`` and friends produce the text again.
"""

import base64
import binascii

from pydantic import BaseModel, ConfigDict, Field

from vidvault.core.errors import MalformedReference


DATA_URI_PREFIX = "data:"
BASE64_MARKER = ";base64"


class RemoteObject(BaseModel):
    """Object stored in the S3 bucket."""

    bucket: str = Field(..., min_length=1, description="Bucket holding the object")
    key: str = Field(..., min_length=1, description="Object key (may contain commas)")

    model_config = ConfigDict(frozen=True)

    def to_wire(self) -> str:
        return f"{self.bucket},{self.key}"


class LocalFile(BaseModel):
    """File written under the public assets directory."""

    path: str = Field(..., min_length=1, description="Public path or absolute URL")

    model_config = ConfigDict(frozen=True)

    @property
    def is_absolute_url(self) -> bool:
        return self.path.startswith(("http://", "https://"))

    def to_wire(self) -> str:
        return self.path


class Inline(BaseModel):
    """Bytes embedded directly in the record."""

    data: bytes
    content_type: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True)

    def to_wire(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"{DATA_URI_PREFIX}{self.content_type}{BASE64_MARKER},{encoded}"


StoredMediaReference = RemoteObject | LocalFile | Inline


def _parse_data_uri(raw: str) -> Inline:
    header, sep, payload = raw[len(DATA_URI_PREFIX) :].partition(",")
    if not sep or not header.endswith(BASE64_MARKER):
        raise MalformedReference("Inline reference is not a base64 data URI")

    content_type = header[: -len(BASE64_MARKER)]
    if not content_type:
        raise MalformedReference("Inline reference has no content type")

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedReference("Inline reference payload is not valid base64") from exc

    return Inline(data=data, content_type=content_type)


def parse_reference(raw: str) -> StoredMediaReference:
    """
    Parse persisted reference text into its structured form.

    Args:
        raw: Text stored in ``video_url`` or ``thumbnail_url``.

    Returns:
        The matching reference model.

    Raises:
        MalformedReference: If the text matches none of the known layouts.
    """
    if not raw:
        raise MalformedReference("Stored reference is empty")

    if raw.startswith(DATA_URI_PREFIX):
        return _parse_data_uri(raw)

    if raw.startswith(("/", "http://", "https://")):
        return LocalFile(path=raw)

    bucket, sep, key = raw.partition(",")
    if not sep or not bucket or not key:
        raise MalformedReference(
            "Stored reference is not in bucket,key format",
            details={"reference": raw},
        )
    return RemoteObject(bucket=bucket, key=key)
