"""Capture trigger: capture a page, pack it and upload it to the snapshot store.

This is the entry point the command line uses. Failures surface as a
single ``CaptureError`` (nothing could be captured) or ``UploadError``
(the store rejected the document); resource-level problems never reach
this level.
"""

import logging
from typing import Optional

from ..api.schemas import UploadResponse
from ..capture.browser_factory import BrowserConfig, BrowserFactory
from ..capture.config import CaptureConfig
from ..capture.fetcher import ResourceFetcher
from ..capture.live_document import LiveDocument, StaticDocument
from ..capture.orchestrator import CaptureOrchestrator
from ..capture.page_session import PageSession, PageSessionConfig
from ..client import SnapshotClient
from ..models.capture import CaptureResult
from ..transport.codec import compression_summary, pack
from ..utils.urls import is_privileged_page


logger = logging.getLogger(__name__)


class CaptureError(Exception):
    """Raised when a page cannot be captured at all."""
    pass


class CaptureService:
    """Coordinates browser, capture pipeline and upload."""

    def __init__(
        self,
        client: Optional[SnapshotClient] = None,
        capture_config: Optional[CaptureConfig] = None,
        browser_config: Optional[BrowserConfig] = None,
        session_config: Optional[PageSessionConfig] = None,
        browser_factory: Optional[BrowserFactory] = None
    ):
        """Initialize the capture service.

        Args:
            client: Snapshot store client used for uploads
            capture_config: Pipeline settings (timeouts, import depth)
            browser_config: Browser launch settings
            session_config: Navigation and load wait settings
            browser_factory: Already started factory to reuse; one is
                started and stopped per capture when omitted
        """
        self.client = client
        self.capture_config = capture_config or CaptureConfig()
        self.browser_config = browser_config or BrowserConfig()
        self.session_config = session_config or PageSessionConfig()
        self.browser_factory = browser_factory

    async def handle_capture(self, target_url: str, expiration: Optional[str] = None) -> UploadResponse:
        """Capture ``target_url`` and upload the result.

        Args:
            target_url: Page to capture
            expiration: Expiration string passed to the store (``1h``, ``7d``, ``never``)

        Returns:
            Identifier, URL and expiry of the stored snapshot

        Raises:
            CaptureError: If the page cannot be captured
            UploadError: If the upload fails
        """
        result = await self.capture(target_url)
        return await self.upload(result, expiration)

    async def capture(self, target_url: str) -> CaptureResult:
        """Load ``target_url`` in a browser and capture it.

        Raises:
            CaptureError: For privileged pages, browser failures and failed captures
        """
        if is_privileged_page(target_url):
            raise CaptureError("Cannot capture browser internal pages")

        factory = self.browser_factory or BrowserFactory(self.browser_config)
        owns_factory = self.browser_factory is None

        try:
            if owns_factory:
                await factory.start()

            async with factory.page() as page:
                session = PageSession(page, self.session_config)
                live = await session.open(target_url)
                result = await self.capture_document(live)

        except CaptureError:
            raise
        except Exception as e:
            logger.error(f"Failed to load page {target_url}: {e}")
            raise CaptureError(f"Failed to load page: {e}") from e
        finally:
            if owns_factory:
                await factory.stop()

        return self._checked(result)

    async def capture_html(self, html: str, base_url: str, title: Optional[str] = None) -> CaptureResult:
        """Capture saved markup without a browser.

        Raises:
            CaptureError: If the capture fails
        """
        result = await self.capture_document(StaticDocument(html, base_url, title=title))
        return self._checked(result)

    async def capture_document(self, live: LiveDocument) -> CaptureResult:
        """Run the capture pipeline over a live document."""
        async with ResourceFetcher(self.capture_config) as fetcher:
            orchestrator = CaptureOrchestrator(fetcher, self.capture_config)
            result = await orchestrator.capture(live)
            logger.debug(f"Fetch statistics: {fetcher.get_stats()}")
            return result

    async def upload(self, result: CaptureResult, expiration: Optional[str] = None) -> UploadResponse:
        """Pack a successful capture and upload it.

        Raises:
            CaptureError: If ``result`` is a failed capture or no client is configured
            UploadError: If the store rejects the upload
        """
        result = self._checked(result)
        if self.client is None:
            raise CaptureError("No snapshot store configured")

        packed = pack(result.html)
        logger.info(compression_summary(result.html, packed))

        return await self.client.upload(
            packed,
            compressed=True,
            title=result.title,
            source_url=result.source_url,
            expires_in=expiration,
        )

    def _checked(self, result: CaptureResult) -> CaptureResult:
        if not result.success:
            raise CaptureError(result.error or "Capture failed")
        return result
