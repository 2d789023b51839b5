"""Integration tests for API endpoints.

Tests the snapshot store over HTTP: uploads, serving, expiry, size limits
and error formatting.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from page_snapshot.api.main import app
from page_snapshot.api.routes.snapshots import set_snapshot_service
from page_snapshot.api.services import SnapshotService
from page_snapshot.persistence.config import StoreConfig
from page_snapshot.persistence.storage import InMemorySnapshotStore
from page_snapshot.transport.codec import pack


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self):
        self.now = datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class TestSnapshotAPI:
    """Test suite for snapshot API endpoints."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def store(self):
        return InMemorySnapshotStore()

    @pytest.fixture
    def config(self):
        return StoreConfig(backend="memory", max_upload_bytes=64 * 1024, max_document_bytes=256 * 1024)

    @pytest.fixture(autouse=True)
    def snapshot_service(self, store, config, clock):
        """Install a fresh in-memory service before each test."""
        service = SnapshotService(store, config, clock=clock)
        set_snapshot_service(service)

        yield service

        set_snapshot_service(None)

    @pytest.fixture
    def client(self):
        """Create a test client for the API."""
        return TestClient(app)

    def _upload(self, client, **payload):
        body = {"html": "<html><body>Hello</body></html>"}
        body.update(payload)
        return client.post("/api/upload", json=body)

    def test_health_check(self, client):
        """Test the health check endpoint."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["services"]["storage"] == "healthy"
        assert "version" in data

    def test_upload_and_fetch(self, client):
        """An uploaded document is served byte for byte."""
        response = self._upload(client, title="Hello", sourceUrl="https://example.com/", expiresIn="1h")

        assert response.status_code == 200
        data = response.json()
        assert len(data["id"]) == 8
        assert data["id"].isalnum() and data["id"].isascii()
        assert data["url"] == f"http://testserver/{data['id']}"
        assert data["expiresAt"] == "2024-01-01T01:00:00.000Z"

        fetched = client.get(f"/{data['id']}")

        assert fetched.status_code == 200
        assert fetched.text == "<html><body>Hello</body></html>"
        assert fetched.headers["content-type"] == "text/html; charset=utf-8"
        assert fetched.headers["x-expires-at"] == "2024-01-01T01:00:00.000Z"
        assert fetched.headers["x-source-url"] == "https://example.com/"
        assert fetched.headers["cache-control"] == "public, max-age=3600"

    def test_expiry_lifecycle(self, client, clock, store):
        """Expired snapshots answer 410 once and are then gone."""
        snapshot_id = self._upload(client, expiresIn="1h").json()["id"]

        clock.advance(minutes=59)
        response = client.get(f"/{snapshot_id}")
        assert response.status_code == 200
        assert response.headers["cache-control"] == "public, max-age=60"

        clock.advance(minutes=2)
        expired = client.get(f"/{snapshot_id}")
        assert expired.status_code == 410
        assert expired.json()["error"] == "Snapshot has expired"

        gone = client.get(f"/{snapshot_id}")
        assert gone.status_code == 404
        assert len(store) == 0

    def test_no_expiration(self, client, clock):
        response = self._upload(client)

        assert response.status_code == 200
        assert response.json()["expiresAt"] is None

        clock.advance(days=3650)
        fetched = client.get(f"/{response.json()['id']}")
        assert fetched.status_code == 200
        assert "x-expires-at" not in fetched.headers

    @pytest.mark.parametrize("value", ["never", "2w", "soon", ""])
    def test_unrecognized_expiration_never_expires(self, client, value):
        response = self._upload(client, expiresIn=value)

        assert response.status_code == 200
        assert response.json()["expiresAt"] is None

    def test_defaults_for_metadata(self, client, snapshot_service):
        snapshot_id = self._upload(client).json()["id"]

        stored = snapshot_service.store._snapshots[snapshot_id]
        assert stored.metadata.title == "Untitled"
        assert stored.metadata.source_url == ""

    def test_compressed_upload(self, client):
        document = "<html><body>" + "Compressible text. " * 5000 + "</body></html>"

        response = self._upload(client, html=pack(document), compressed=True)

        assert response.status_code == 200
        fetched = client.get(f"/{response.json()['id']}")
        assert fetched.text == document

    def test_invalid_compressed_upload(self, client):
        response = self._upload(client, html="definitely not base64 gzip!", compressed=True)

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid compressed content")

    def test_decompressed_size_ceiling(self, client):
        document = "x" * (300 * 1024)

        response = self._upload(client, html=pack(document), compressed=True)

        assert response.status_code == 413
        assert response.json()["error"] == "Content too large"

    def test_missing_html(self, client):
        response = client.post("/api/upload", json={"title": "No content"})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing html content"

    def test_empty_html(self, client):
        assert self._upload(client, html="").status_code == 400

    def test_invalid_json(self, client):
        response = client.post(
            "/api/upload",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid JSON body"

    def test_non_object_body(self, client):
        response = client.post("/api/upload", json=["<html></html>"])

        assert response.status_code == 400

    def test_wrong_field_type(self, client):
        response = self._upload(client, html=12345)

        assert response.status_code == 400
        assert "html" in response.json()["error"]

    def test_oversized_upload(self, client, store):
        """Bodies above the upload ceiling are rejected with 413."""
        response = self._upload(client, html="x" * (65 * 1024))

        assert response.status_code == 413
        assert response.json()["error"] == "Content too large"
        assert len(store) == 0

    def test_declared_length_is_checked_first(self, client):
        response = client.post(
            "/api/upload",
            content=json.dumps({"html": "<p>small</p>"}).encode(),
            headers={"Content-Type": "application/json", "Content-Length": str(10 * 1024 * 1024)},
        )

        assert response.status_code == 413

    def test_unknown_snapshot(self, client):
        response = client.get("/zzzzzzzz")

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "Snapshot not found"
        assert data["code"] == "http_404"
        assert data["request_id"] == response.headers["x-request-id"]

    def test_public_base_url(self, client, config):
        config.public_base_url = "https://snap.example.com/"

        data = self._upload(client).json()

        assert data["url"] == f"https://snap.example.com/{data['id']}"

    def test_identifier_collisions_are_retried(self, client, store, config, clock):
        ids = iter(["aaaaaaaa", "aaaaaaaa", "bbbbbbbb"])
        set_snapshot_service(SnapshotService(store, config, clock=clock, id_factory=lambda length: next(ids)))

        first = self._upload(client).json()["id"]
        second = self._upload(client).json()["id"]

        assert (first, second) == ("aaaaaaaa", "bbbbbbbb")

    def test_identifier_exhaustion(self, client, store, config, clock):
        set_snapshot_service(SnapshotService(store, config, clock=clock, id_factory=lambda length: "aaaaaaaa"))
        self._upload(client)

        response = self._upload(client)

        assert response.status_code == 500
        assert response.json()["error"].startswith("Upload failed")

    def test_cors_headers(self, client):
        response = client.options(
            "/api/upload",
            headers={
                "Origin": "https://example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
