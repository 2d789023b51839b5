"""Resource fetcher that turns external references into data URLs.

Every failure mode (malformed URL, unsupported scheme, network error,
non-2xx status, empty body, timeout) is reported as ``None``. Callers
decide what to fall back to; nothing here raises.
"""

import asyncio
import base64
import logging
from typing import Optional, Tuple

import aiohttp

from ..utils.urls import URLResolutionError, is_data_url, resolve
from .config import CaptureConfig, DEFAULT_USER_AGENT


logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


def to_data_url(body: bytes, content_type: Optional[str]) -> str:
    """Encode a response body as a base64 data URL."""
    mime = normalize_mime(content_type)
    return f"data:{mime};base64,{base64.b64encode(body).decode('ascii')}"


def normalize_mime(content_type: Optional[str]) -> str:
    """Reduce a Content-Type header to ``type/subtype[;param=value...]``."""
    if not content_type or not content_type.strip():
        return DEFAULT_MIME_TYPE
    parts = [p.strip() for p in content_type.split(';') if p.strip()]
    if not parts or '/' not in parts[0]:
        return DEFAULT_MIME_TYPE
    return ';'.join([parts[0].lower()] + [p.replace(' ', '') for p in parts[1:]])


class ResourceFetcher:
    """Fetches resources for inlining.

    Use as an async context manager so the underlying HTTP session is
    closed when the capture finishes::

        async with ResourceFetcher(config) as fetcher:
            data_url = await fetcher.fetch("logo.png", "https://example.com/")
    """

    def __init__(
        self,
        config: Optional[CaptureConfig] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """Initialize the fetcher.

        Args:
            config: Capture configuration (timeouts, concurrency bound)
            session: Existing aiohttp session to reuse; not closed by the fetcher
        """
        self.config = config or CaptureConfig()
        self.timeout = self.config.fetch_timeout_seconds
        self._client_timeout = aiohttp.ClientTimeout(total=self.timeout)
        self._session = session
        self._owns_session = session is None
        self._semaphore = (
            asyncio.Semaphore(self.config.max_concurrent_fetches)
            if self.config.max_concurrent_fetches else None
        )
        self._stats = {
            "requested": 0,
            "succeeded": 0,
            "failed": 0,
            "timed_out": 0,
        }

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self):
        if self._session is None:
            headers = {'User-Agent': self.config.user_agent or DEFAULT_USER_AGENT}
            self._session = aiohttp.ClientSession(headers=headers, timeout=self._client_timeout)
            self._owns_session = True

    async def close(self):
        """Close the HTTP session if this fetcher created it."""
        if self._session and self._owns_session:
            await self._session.close()
        self._session = None

    async def fetch(self, url: str, base_url: Optional[str] = None) -> Optional[str]:
        """Fetch a resource and return it as a data URL.

        Args:
            url: Reference to fetch, possibly relative
            base_url: URL the reference is resolved against

        Returns:
            ``data:<mime>;base64,<body>`` or ``None`` if the resource is unavailable
        """
        if url and is_data_url(url):
            return url.strip()

        outcome = await self._get(url, base_url)
        if outcome is None:
            return None
        body, content_type = outcome
        return to_data_url(body, content_type)

    async def fetch_text(self, url: str, base_url: Optional[str] = None) -> Optional[str]:
        """Fetch a resource and return its body decoded as text."""
        outcome = await self._get(url, base_url)
        if outcome is None:
            return None
        body, _ = outcome
        return body.decode('utf-8', errors='replace')

    async def _get(self, url: str, base_url: Optional[str]) -> Optional[Tuple[bytes, Optional[str]]]:
        try:
            absolute = resolve(url, base_url)
        except URLResolutionError as e:
            logger.debug(f"Skipping unresolvable reference: {e}")
            return None

        self._stats["requested"] += 1
        try:
            if self._semaphore:
                async with self._semaphore:
                    outcome = await self._request(absolute)
            else:
                outcome = await self._request(absolute)
        except asyncio.TimeoutError:
            self._stats["timed_out"] += 1
            self._stats["failed"] += 1
            logger.debug(f"Fetch timed out after {self.timeout}s: {absolute}")
            return None
        except Exception as e:
            self._stats["failed"] += 1
            logger.debug(f"Fetch failed for {absolute}: {e}")
            return None

        if outcome is None:
            self._stats["failed"] += 1
        else:
            self._stats["succeeded"] += 1
        return outcome

    async def _request(self, url: str) -> Optional[Tuple[bytes, Optional[str]]]:
        await self._ensure_session()

        async with self._session.get(url, timeout=self._client_timeout) as response:
            if not 200 <= response.status < 300:
                logger.debug(f"HTTP {response.status} fetching {url}")
                return None

            body = await response.read()
            if not body:
                logger.debug(f"Empty body fetching {url}")
                return None

            return body, response.headers.get('Content-Type')

    def get_stats(self) -> dict:
        """Get fetch statistics for this capture."""
        return dict(self._stats)
