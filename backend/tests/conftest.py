"""
Pytest Configuration and Test Fixtures for the VidVault Backend

This module provides the shared fixtures:
- Test settings pointing staging and assets at a temporary directory
- JWT helpers built with python-jose, matching what the service validates
- An in-memory record store with the VideoStore interface
- A mocked S3 storage client that records uploads and signs deterministically
- A fake MediaToolkit returning canned probe reports or configured failures
- A FastAPI TestClient with all collaborators swapped via dependency_overrides

No MongoDB, S3 endpoint or ffmpeg binary is needed to run the suite.
"""

import io
import json
import shutil
import uuid

from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest

from fastapi.testclient import TestClient
from jose import jwt

from vidvault.api.dependencies import get_media_toolkit, get_storage, get_video_store
from vidvault.config import Settings, get_settings
from vidvault.core.errors import PersistenceError
from vidvault.main import app
from vidvault.models.user import User
from vidvault.models.video import Video


TEST_BUCKET = "test-bucket"
TEST_SECRET = "test-secret-key-for-jwt-signing-minimum-32-chars"


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """
    Settings isolated to the test's temporary directory.

    Staging files land in ``tmp_path/staging`` so tests can assert that
    nothing is left behind; local thumbnails land in ``tmp_path/assets``.
    """
    staging_dir = tmp_path / "staging"
    staging_dir.mkdir()
    return Settings(
        app_env="testing",
        app_name="VidVault-Test",
        json_logs=False,
        secret_key=TEST_SECRET,
        mongodb_uri="mongodb://localhost:27017",
        mongodb_db_name="test_vidvault",
        s3_endpoint_url="http://localhost:9000",
        s3_access_key_id="test-access-key",
        s3_secret_access_key="test-secret-key",
        s3_bucket_name=TEST_BUCKET,
        check_bucket_on_startup=False,
        staging_dir=staging_dir,
        assets_root=tmp_path / "assets",
    )


# ==============================================================================
# Identity Fixtures
# ==============================================================================


def make_token(
    subject: str | None,
    secret: str = TEST_SECRET,
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    """Sign a bearer token the way the token issuer does."""
    claims: dict[str, Any] = {"exp": datetime.now(UTC) + expires_in}
    if subject is not None:
        claims["sub"] = subject
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def owner_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def other_user_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def video_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def owner_token(owner_id: str) -> str:
    return make_token(owner_id)


@pytest.fixture
def other_token(other_user_id: str) -> str:
    return make_token(other_user_id)


# ==============================================================================
# Record Store Fixtures
# ==============================================================================


class FakeVideoStore:
    """In-memory stand-in for VideoStore."""

    def __init__(self) -> None:
        self.videos: dict[str, dict[str, Any]] = {}
        self.users: dict[str, dict[str, Any]] = {}
        self.updates: list[tuple[str, str, str]] = []
        self.fail_updates = False

    def add_user(self, user_id: str, email: str | None = None) -> None:
        self.users[user_id] = {"_id": user_id, "email": email}

    def add_video(self, video_id: str, user_id: str, **fields: Any) -> None:
        self.videos[video_id] = {
            "_id": video_id,
            "user_id": user_id,
            "title": "Test video",
            "description": "",
            **fields,
        }

    async def get_video(self, video_id: str) -> Video | None:
        document = self.videos.get(video_id)
        return Video.model_validate(document) if document else None

    async def get_user(self, user_id: str) -> User | None:
        document = self.users.get(user_id)
        return User.model_validate(document) if document else None

    async def list_videos(self, user_id: str, limit: int = 100) -> list[Video]:
        return [
            Video.model_validate(document)
            for document in self.videos.values()
            if document["user_id"] == user_id
        ][:limit]

    async def update_media_reference(self, video_id: str, field: str, reference: str) -> Video:
        if self.fail_updates or video_id not in self.videos:
            raise PersistenceError("Failed to update video record", details={"video_id": video_id})
        self.updates.append((video_id, field, reference))
        document = self.videos[video_id]
        document[field] = reference
        document["updated_at"] = datetime.now(UTC)
        return Video.model_validate(document)


@pytest.fixture
def video_store(owner_id: str, other_user_id: str, video_id: str) -> FakeVideoStore:
    """Store with two users and one video owned by ``owner_id``."""
    store = FakeVideoStore()
    store.add_user(owner_id, email="owner@example.com")
    store.add_user(other_user_id, email="other@example.com")
    store.add_video(video_id, owner_id)
    return store


# ==============================================================================
# Storage Fixtures
# ==============================================================================


@pytest.fixture
def mock_storage() -> MagicMock:
    """
    Mocked StorageClient.

    ``upload_file`` is an AsyncMock; presigned URLs embed bucket, key and
    lifetime so tests can assert on them.
    """
    storage = MagicMock()
    storage.bucket_name = TEST_BUCKET
    storage.upload_file = AsyncMock(return_value=None)
    storage.check_bucket = AsyncMock(return_value=None)
    storage.generate_presigned_download_url = Mock(
        side_effect=lambda key, expires_in, bucket=None: (
            f"https://signed.example.com/{bucket or TEST_BUCKET}/{key}?X-Amz-Expires={expires_in}"
        )
    )
    return storage


# ==============================================================================
# Media Tool Fixtures
# ==============================================================================


def probe_report(*aspect_ratios: str | None) -> bytes:
    """Build an ffprobe JSON report with one stream per ratio."""
    streams = [
        {} if ratio is None else {"display_aspect_ratio": ratio} for ratio in aspect_ratios
    ]
    return json.dumps({"streams": streams}).encode()


class FakeToolkit:
    """
    MediaToolkit double.

    ``remux`` copies the input to the output path unless ``remux_error`` is
    set; ``probe`` returns ``report`` unless ``probe_error`` is set.
    """

    def __init__(self, report: bytes | None = None) -> None:
        self.report = report if report is not None else probe_report("16:9")
        self.remux_error: Exception | None = None
        self.probe_error: Exception | None = None
        self.remux_calls: list[tuple[Path, Path]] = []
        self.probe_calls: list[Path] = []

    async def remux(self, input_path: Path, output_path: Path) -> None:
        self.remux_calls.append((input_path, output_path))
        if self.remux_error is not None:
            output_path.write_bytes(b"partial")
            raise self.remux_error
        shutil.copyfile(input_path, output_path)

    async def probe(self, path: Path) -> bytes:
        self.probe_calls.append(path)
        if self.probe_error is not None:
            raise self.probe_error
        return self.report


@pytest.fixture
def fake_toolkit() -> FakeToolkit:
    return FakeToolkit()


# ==============================================================================
# Upload Fixtures
# ==============================================================================


class FakeUpload:
    """Minimal UploadFile double for orchestrator tests."""

    def __init__(self, data: bytes, content_type: str | None) -> None:
        self.content_type = content_type
        self._buffer = io.BytesIO(data)
        self.closed = False

    async def read(self, size: int = -1) -> bytes:
        return self._buffer.read(size)

    async def close(self) -> None:
        self.closed = True


def receiver(upload: FakeUpload):
    """Wrap an upload in the lazy reader the orchestrator expects."""
    calls: list[int] = []

    async def receive_file() -> FakeUpload:
        calls.append(1)
        return upload

    receive_file.calls = calls  # type: ignore[attr-defined]
    return receive_file


# ==============================================================================
# FastAPI Test Client Fixtures
# ==============================================================================


@pytest.fixture
def test_client(
    test_settings: Settings,
    video_store: FakeVideoStore,
    mock_storage: MagicMock,
    fake_toolkit: FakeToolkit,
) -> Generator[TestClient, None, None]:
    """
    TestClient with settings, record store, storage and media tools replaced.

    The lifespan is not run, so no connection to MongoDB or S3 is attempted.
    """
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_video_store] = lambda: video_store
    app.dependency_overrides[get_storage] = lambda: mock_storage
    app.dependency_overrides[get_media_toolkit] = lambda: fake_toolkit

    yield TestClient(app)

    app.dependency_overrides.clear()
