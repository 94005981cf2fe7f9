"""
Tests for the application shell: probes, middleware and the error envelope.
"""

from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from conftest import FakeVideoStore, auth_header

from vidvault.core.errors import PersistenceError
from vidvault.main import app


def test_health(test_client: TestClient) -> None:
    response = test_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_ready_when_mongodb_answers(test_client: TestClient) -> None:
    db_client = MagicMock()
    db_client.ping = AsyncMock(return_value=True)

    with patch("vidvault.main.get_db_client", return_value=db_client):
        response = test_client.get("/ready")

    assert response.status_code == 200
    assert response.json()["checks"] == {"mongodb": True}


def test_not_ready_before_startup(test_client: TestClient) -> None:
    with patch("vidvault.main.get_db_client", side_effect=RuntimeError("not initialized")):
        response = test_client.get("/ready")

    assert response.status_code == 503
    assert response.json()["ready"] is False


def test_request_id_is_echoed(test_client: TestClient) -> None:
    response = test_client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"
    assert response.headers["X-Process-Time"].endswith("ms")


def test_request_id_is_generated(test_client: TestClient) -> None:
    first = test_client.get("/health").headers["X-Request-ID"]
    second = test_client.get("/health").headers["X-Request-ID"]

    assert first and second and first != second


def test_server_errors_hide_details(
    test_client: TestClient,
    video_store: FakeVideoStore,
    video_id: str,
    owner_token: str,
) -> None:
    video_store.get_video = AsyncMock(
        side_effect=PersistenceError("mongo exploded", details={"host": "db-1"})
    )

    response = test_client.get(f"/api/v1/videos/{video_id}", headers=auth_header(owner_token))

    assert response.status_code == 500
    assert response.json() == {"error": "server_error", "message": "An unexpected error occurred."}


def test_client_errors_carry_details(test_client: TestClient, owner_token: str) -> None:
    response = test_client.get("/api/v1/videos/xyz", headers=auth_header(owner_token))

    assert response.status_code == 400
    assert response.json() == {
        "error": "invalid_id",
        "message": "Video id is not a valid UUID",
        "details": {"video_id": "xyz"},
    }


def test_assets_are_mounted_for_local_thumbnails() -> None:
    assert "assets" in {getattr(route, "name", None) for route in app.routes}
