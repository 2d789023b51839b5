"""HTTP client for the snapshot store."""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from .api.schemas import UploadResponse


logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000"


class UploadError(Exception):
    """Raised when the snapshot store rejects or fails an upload."""
    pass


class SnapshotClient:
    """Uploads packed snapshots to a snapshot store."""

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        timeout_seconds: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """Initialize the client.

        Args:
            api_url: Base URL of the snapshot store
            timeout_seconds: Overall request timeout
            transport: Custom httpx transport (tests use ``httpx.MockTransport``)
        """
        self.api_url = api_url.rstrip('/')
        self.client = httpx.AsyncClient(
            base_url=self.api_url,
            timeout=httpx.Timeout(timeout=timeout_seconds, connect=10.0),
            limits=httpx.Limits(max_connections=4, max_keepalive_connections=2),
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        await self.client.aclose()

    async def upload(
        self,
        html: str,
        compressed: bool = True,
        title: Optional[str] = None,
        source_url: Optional[str] = None,
        expires_in: Optional[str] = None
    ) -> UploadResponse:
        """Upload a document.

        Args:
            html: Document, or its packed form when ``compressed`` is true
            compressed: Whether ``html`` is packed (gzip + base64)
            title: Page title
            source_url: URL the page was captured from
            expires_in: Expiration string (``1h``, ``7d``, ``never``)

        Returns:
            Identifier, URL and expiry of the stored snapshot

        Raises:
            UploadError: If the request fails or the store answers with an error
        """
        payload = {
            "html": html,
            "compressed": compressed,
            "title": title,
            "sourceUrl": source_url,
            "expiresIn": expires_in,
        }

        try:
            response = await self.client.post("/api/upload", json=payload)
        except httpx.RequestError as e:
            raise UploadError(f"Upload failed: {e}")

        if response.is_error:
            raise UploadError(f"Upload failed: {response.text}")

        try:
            result = UploadResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise UploadError(f"Upload failed: unexpected response: {e}")

        logger.info(f"Uploaded snapshot {result.id}: {result.url}")
        return result
