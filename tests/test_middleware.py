"""Tests for request logging and size limit middleware."""

import logging

import pytest
from fastapi import FastAPI, Response
from fastapi.testclient import TestClient

from media_decrypt.api.middleware import RequestLoggingMiddleware, SizeLimitMiddleware
from media_decrypt.api.middleware.logging import mask_download_path
from media_decrypt.api.middleware.size_limit import DEFAULT_MAX_REQUEST_SIZE, format_size


def _echo_app() -> FastAPI:
    app = FastAPI()

    @app.post("/echo")
    async def echo(payload: dict) -> dict:
        return payload

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.get("/download/{filename}")
    async def download(filename: str) -> Response:
        return Response(content=b"media bytes", media_type="image/jpeg")

    @app.get("/broken")
    async def broken() -> Response:
        return Response(status_code=503)

    return app


# =============================================================================
# Size limit
# =============================================================================


class TestFormatSize:
    """Tests for format_size."""

    def test_format_size(self):
        """Sizes are rendered with the largest fitting unit."""
        assert format_size(512) == "512 bytes"
        assert format_size(1536) == "1.5 KB"
        assert format_size(5 * 1024 * 1024) == "5.0 MB"
        assert format_size(2 * 1024**3) == "2.0 GB"

    def test_default_limit(self):
        assert DEFAULT_MAX_REQUEST_SIZE == 5 * 1024 * 1024


class TestSizeLimitMiddleware:
    """Tests for SizeLimitMiddleware."""

    @pytest.fixture
    def client(self) -> TestClient:
        app = _echo_app()
        app.add_middleware(SizeLimitMiddleware, max_request_size=32)
        return TestClient(app)

    def test_small_body_passes(self, client: TestClient):
        response = client.post("/echo", json={"a": 1})
        assert response.status_code == 200
        assert response.json() == {"a": 1}

    def test_large_body_rejected(self, client: TestClient):
        """Bodies over the limit get 413 before reaching the route."""
        response = client.post("/echo", json={"data": "x" * 100})
        assert response.status_code == 413
        assert response.json()["error"]["type"] == "request_too_large"
        assert "32 bytes" in response.json()["error"]["message"]

    def test_invalid_content_length(self, client: TestClient):
        response = client.post(
            "/echo",
            content=b"{}",
            headers={"Content-Length": "abc", "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["type"] == "invalid_content_length"


# =============================================================================
# Request logging
# =============================================================================


class TestRequestLoggingMiddleware:
    """Tests for RequestLoggingMiddleware."""

    @pytest.fixture
    def client(self) -> TestClient:
        app = _echo_app()
        app.add_middleware(RequestLoggingMiddleware)
        return TestClient(app)

    def test_logs_request_and_sets_timing_header(self, client: TestClient, caplog):
        """Completed requests are logged with method, path and status."""
        with caplog.at_level(logging.INFO, logger="media_decrypt.api.middleware.logging"):
            response = client.post("/echo", json={"a": 1})

        assert response.status_code == 200
        assert "X-Process-Time" in response.headers
        records = [r for r in caplog.records if getattr(r, "event", None) == "request_completed"]
        assert len(records) == 1
        assert records[0].method == "POST"
        assert records[0].path == "/echo"
        assert records[0].status_code == 200

    def test_skips_health(self, client: TestClient, caplog):
        with caplog.at_level(logging.INFO, logger="media_decrypt.api.middleware.logging"):
            response = client.get("/health")

        assert response.status_code == 200
        assert "X-Process-Time" not in response.headers
        assert not [r for r in caplog.records if getattr(r, "event", None)]

    def test_forwarded_client_ip(self, client: TestClient, caplog):
        with caplog.at_level(logging.INFO, logger="media_decrypt.api.middleware.logging"):
            client.post("/echo", json={}, headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})

        records = [r for r in caplog.records if getattr(r, "event", None) == "request_completed"]
        assert records[0].client_ip == "203.0.113.7"

    def test_masks_download_handle(self, client: TestClient, caplog):
        """Artifact handles and query strings never reach the log."""
        artifact_id = "3f2b8c1e-9a4d-4e6f-8b7a-1c2d3e4f5a6b"
        with caplog.at_level(logging.INFO, logger="media_decrypt.api.middleware.logging"):
            response = client.get(f"/download/{artifact_id}.jpg?token=secret")

        assert response.status_code == 200
        records = [r for r in caplog.records if getattr(r, "event", None) == "request_completed"]
        assert records[0].path == "/download/3f2b8c1e***"
        assert records[0].bytes_sent == len(b"media bytes")
        assert artifact_id not in records[0].getMessage()
        assert "secret" not in records[0].getMessage()

    def test_server_errors_logged_as_warning(self, client: TestClient, caplog):
        with caplog.at_level(logging.INFO, logger="media_decrypt.api.middleware.logging"):
            client.get("/broken")

        records = [r for r in caplog.records if getattr(r, "event", None) == "request_completed"]
        assert records[0].status_code == 503
        assert records[0].levelno == logging.WARNING


class TestMaskDownloadPath:
    """Tests for mask_download_path."""

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/download/3f2b8c1e-9a4d-4e6f-8b7a-1c2d3e4f5a6b.jpg", "/download/3f2b8c1e***"),
            ("/downloads/3f2b8c1e-9a4d-4e6f-8b7a-1c2d3e4f5a6b", "/downloads/3f2b8c1e***"),
            ("/decode", "/decode"),
            ("/download/abc", "/download/abc"),
        ],
    )
    def test_mask(self, path: str, expected: str):
        assert mask_download_path(path) == expected
