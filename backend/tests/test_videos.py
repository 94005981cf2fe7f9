"""
Tests for the read endpoints: signed video URLs and the thumbnail resolver.
"""

import base64
import uuid

from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from conftest import TEST_BUCKET, FakeVideoStore, auth_header, make_token


class TestGetVideo:
    def test_remote_reference_is_signed(
        self,
        test_client: TestClient,
        video_store: FakeVideoStore,
        video_id: str,
        owner_token: str,
    ) -> None:
        video_store.videos[video_id]["video_url"] = f"{TEST_BUCKET},landscape/abc.mp4"

        response = test_client.get(f"/api/v1/videos/{video_id}", headers=auth_header(owner_token))

        assert response.status_code == 200
        assert response.json()["video_url"] == (
            f"https://signed.example.com/{TEST_BUCKET}/landscape/abc.mp4?X-Amz-Expires=900"
        )
        assert video_store.videos[video_id]["video_url"] == f"{TEST_BUCKET},landscape/abc.mp4"

    def test_each_read_signs_again(
        self,
        test_client: TestClient,
        video_store: FakeVideoStore,
        mock_storage: MagicMock,
        video_id: str,
        owner_token: str,
    ) -> None:
        video_store.videos[video_id]["video_url"] = f"{TEST_BUCKET},landscape/abc.mp4"

        for _ in range(2):
            test_client.get(f"/api/v1/videos/{video_id}", headers=auth_header(owner_token))

        assert mock_storage.generate_presigned_download_url.call_count == 2

    def test_foreign_bucket_is_a_server_error(
        self,
        test_client: TestClient,
        video_store: FakeVideoStore,
        video_id: str,
        owner_token: str,
    ) -> None:
        video_store.videos[video_id]["video_url"] = "elsewhere,landscape/abc.mp4"

        response = test_client.get(f"/api/v1/videos/{video_id}", headers=auth_header(owner_token))

        assert response.status_code == 500
        assert response.json()["message"] == "An unexpected error occurred."

    def test_malformed_reference(
        self,
        test_client: TestClient,
        video_store: FakeVideoStore,
        video_id: str,
        owner_token: str,
    ) -> None:
        video_store.videos[video_id]["video_url"] = "no-comma"

        response = test_client.get(f"/api/v1/videos/{video_id}", headers=auth_header(owner_token))

        assert response.status_code == 500

    def test_non_owner(self, test_client: TestClient, video_id: str, other_token: str) -> None:
        response = test_client.get(f"/api/v1/videos/{video_id}", headers=auth_header(other_token))

        assert response.status_code == 403

    def test_requires_token(self, test_client: TestClient, video_id: str) -> None:
        assert test_client.get(f"/api/v1/videos/{video_id}").status_code == 401


class TestListVideos:
    def test_lists_only_own_videos(
        self,
        test_client: TestClient,
        video_store: FakeVideoStore,
        owner_id: str,
        other_user_id: str,
        video_id: str,
        owner_token: str,
    ) -> None:
        video_store.add_video(str(uuid.uuid4()), other_user_id)
        video_store.videos[video_id]["video_url"] = f"{TEST_BUCKET},portrait/p.mp4"

        response = test_client.get("/api/v1/videos", headers=auth_header(owner_token))

        assert response.status_code == 200
        body = response.json()
        assert [item["id"] for item in body] == [video_id]
        assert body[0]["video_url"].startswith(f"https://signed.example.com/{TEST_BUCKET}/portrait/")
        assert all(item["user_id"] == owner_id for item in body)

    def test_unknown_user(self, test_client: TestClient) -> None:
        response = test_client.get("/api/v1/videos", headers=auth_header(make_token("ghost")))

        assert response.status_code == 401


class TestThumbnailResolver:
    def test_local_thumbnail_redirects(
        self, test_client: TestClient, video_store: FakeVideoStore, video_id: str
    ) -> None:
        video_store.videos[video_id]["thumbnail_url"] = f"/assets/{video_id}.png"

        response = test_client.get(f"/api/v1/thumbnails/{video_id}", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == f"/assets/{video_id}.png"

    def test_remote_thumbnail_redirects_to_signed_url(
        self, test_client: TestClient, video_store: FakeVideoStore, video_id: str
    ) -> None:
        video_store.videos[video_id]["thumbnail_url"] = f"{TEST_BUCKET},thumbnails/{video_id}.jpeg"

        response = test_client.get(f"/api/v1/thumbnails/{video_id}", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"].startswith(
            f"https://signed.example.com/{TEST_BUCKET}/thumbnails/{video_id}.jpeg"
        )

    def test_inline_thumbnail_is_served(
        self, test_client: TestClient, video_store: FakeVideoStore, video_id: str
    ) -> None:
        data = b"GIF89a\x01\x00"
        video_store.videos[video_id]["thumbnail_url"] = (
            "data:image/gif;base64," + base64.b64encode(data).decode()
        )

        response = test_client.get(f"/api/v1/thumbnails/{video_id}")

        assert response.status_code == 200
        assert response.content == data
        assert response.headers["content-type"] == "image/gif"

    def test_no_thumbnail(self, test_client: TestClient, video_id: str) -> None:
        response = test_client.get(f"/api/v1/thumbnails/{video_id}")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_unknown_video(self, test_client: TestClient) -> None:
        response = test_client.get(f"/api/v1/thumbnails/{uuid.uuid4()}")

        assert response.status_code == 404

    def test_bad_identifier(self, test_client: TestClient) -> None:
        assert test_client.get("/api/v1/thumbnails/nope").status_code == 400
