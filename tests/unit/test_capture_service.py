"""Unit tests for the capture service and snapshot client."""

import json
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from page_snapshot.client import SnapshotClient, UploadError
from page_snapshot.models.capture import CaptureResult
from page_snapshot.services.capture_service import CaptureError, CaptureService
from page_snapshot.transport.codec import unpack


def _client(handler):
    return SnapshotClient("http://store.test", transport=httpx.MockTransport(handler))


def _upload_handler(captured):
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={
            "id": "aB3dE5gH",
            "url": "http://store.test/aB3dE5gH",
            "expiresAt": "2024-01-01T01:00:00.000Z",
        })
    return handler


class TestSnapshotClient:
    """Tests for SnapshotClient.upload."""

    @pytest.mark.asyncio
    async def test_upload_payload(self):
        captured = []

        async with _client(_upload_handler(captured)) as client:
            response = await client.upload(
                "packed", title="T", source_url="https://example.com/", expires_in="1h"
            )

        assert response.id == "aB3dE5gH"
        assert response.expires_at == "2024-01-01T01:00:00.000Z"

        request = captured[0]
        assert request.method == "POST"
        assert request.url.path == "/api/upload"
        assert json.loads(request.content) == {
            "html": "packed",
            "compressed": True,
            "title": "T",
            "sourceUrl": "https://example.com/",
            "expiresIn": "1h",
        }

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        def handler(request):
            return httpx.Response(413, json={"error": "Content too large"})

        async with _client(handler) as client:
            with pytest.raises(UploadError, match="Content too large"):
                await client.upload("packed")

    @pytest.mark.asyncio
    async def test_connection_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(UploadError, match="Upload failed"):
                await client.upload("packed")

    @pytest.mark.asyncio
    async def test_unexpected_response_raises(self):
        def handler(request):
            return httpx.Response(200, text="<html>proxy page</html>")

        async with _client(handler) as client:
            with pytest.raises(UploadError):
                await client.upload("packed")


class TestCaptureService:
    """Tests for CaptureService."""

    @pytest.mark.asyncio
    async def test_privileged_page_is_rejected(self):
        factory = MagicMock()
        service = CaptureService(browser_factory=factory)

        with pytest.raises(CaptureError, match="Cannot capture browser internal pages"):
            await service.capture("chrome://settings")

        factory.page.assert_not_called()

    @pytest.mark.asyncio
    async def test_browser_failure_becomes_capture_error(self):
        factory = MagicMock()

        @asynccontextmanager
        async def failing_page():
            raise RuntimeError("net::ERR_NAME_NOT_RESOLVED")
            yield

        factory.page = failing_page
        service = CaptureService(browser_factory=factory)

        with pytest.raises(CaptureError, match="Failed to load page"):
            await service.capture("https://unreachable.invalid/")

    @pytest.mark.asyncio
    async def test_capture_uses_page_session(self, live_document_factory):
        live = live_document_factory("<html><body><p>Live</p></body></html>", url="https://example.com/")
        factory = MagicMock()

        @asynccontextmanager
        async def page():
            yield MagicMock()

        factory.page = page
        service = CaptureService(browser_factory=factory)

        with patch('page_snapshot.services.capture_service.PageSession') as session_cls:
            session_cls.return_value.open = AsyncMock(return_value=live)
            result = await service.capture("https://example.com/")

        assert result.success is True
        assert "<p>Live</p>" in result.html
        session_cls.return_value.open.assert_awaited_once_with("https://example.com/")

    @pytest.mark.asyncio
    async def test_capture_html_without_browser(self):
        service = CaptureService()

        result = await service.capture_html(
            "<html><head><title>Saved</title></head><body><script>x()</script><p>Body</p></body></html>",
            "https://example.com/",
        )

        assert result.success is True
        assert result.title == "Saved"
        assert "<script" not in result.html
        assert "<p>Body</p>" in result.html

    @pytest.mark.asyncio
    async def test_upload_packs_document(self):
        captured = []
        async with _client(_upload_handler(captured)) as client:
            service = CaptureService(client=client)
            result = CaptureResult.succeeded("<html><body>Doc</body></html>", "Doc", "https://example.com/")

            response = await service.upload(result, "1h")

        assert response.url == "http://store.test/aB3dE5gH"
        payload = json.loads(captured[0].content)
        assert payload["compressed"] is True
        assert unpack(payload["html"]) == "<html><body>Doc</body></html>"
        assert payload["expiresIn"] == "1h"
        assert payload["title"] == "Doc"

    @pytest.mark.asyncio
    async def test_failed_capture_is_not_uploaded(self):
        client = MagicMock()
        client.upload = AsyncMock()
        service = CaptureService(client=client)

        with pytest.raises(CaptureError, match="boom"):
            await service.upload(CaptureResult.failed("boom"))

        client.upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_requires_client(self):
        service = CaptureService()

        with pytest.raises(CaptureError, match="No snapshot store configured"):
            await service.upload(CaptureResult.succeeded("<p></p>", None, None))

    @pytest.mark.asyncio
    async def test_handle_capture(self):
        service = CaptureService(client=MagicMock())
        result = CaptureResult.succeeded("<p></p>", "T", "https://example.com/")
        service.capture = AsyncMock(return_value=result)
        service.upload = AsyncMock(return_value="uploaded")

        assert await service.handle_capture("https://example.com/", "7d") == "uploaded"
        service.upload.assert_awaited_once_with(result, "7d")
