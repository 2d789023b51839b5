"""Shared test fixtures and configuration for Page Snapshot tests."""

import base64
import sys
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urljoin

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from page_snapshot.capture.live_document import (
    CanvasImage,
    ImageStatus,
    LiveDocument,
    LiveImage,
    StyleSheetNode,
)


PNG_BYTES = b'\x89PNG\r\n\x1a\nfake-image-bytes'
PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode('ascii')


def data_url_for(text: str, mime: str = "text/plain") -> str:
    return f"data:{mime};base64," + base64.b64encode(text.encode('utf-8')).decode('ascii')


class FakeFetcher:
    """Resource fetcher stand-in serving canned responses by absolute URL."""

    def __init__(
        self,
        resources: Optional[Dict[str, str]] = None,
        texts: Optional[Dict[str, str]] = None
    ):
        self.resources = resources or {}
        self.texts = texts or {}
        self.requests: List[str] = []

    def _absolute(self, url: str, base_url: Optional[str]) -> str:
        url = url.strip()
        return urljoin(base_url, url) if base_url else url

    async def fetch(self, url: str, base_url: Optional[str] = None) -> Optional[str]:
        if url.strip().startswith('data:'):
            return url.strip()
        absolute = self._absolute(url, base_url)
        self.requests.append(absolute)
        return self.resources.get(absolute)

    async def fetch_text(self, url: str, base_url: Optional[str] = None) -> Optional[str]:
        absolute = self._absolute(url, base_url)
        self.requests.append(absolute)
        return self.texts.get(absolute)


class FakeLiveDocument(LiveDocument):
    """In-memory live document with configurable browser state."""

    def __init__(
        self,
        html: str,
        url: str = "https://example.com/page",
        title: str = "Example Page",
        sheets: Optional[List[StyleSheetNode]] = None,
        inline_styles: Optional[List[str]] = None,
        images: Optional[Dict[str, LiveImage]] = None,
        canvases: Optional[List[CanvasImage]] = None,
        frames: Optional[Dict[str, str]] = None
    ):
        self.html = html
        self.url = url
        self._title = title
        self.sheets = sheets or []
        self.inline_styles = inline_styles or []
        self.images = images or {}
        self._canvases = canvases or []
        self.frames = frames or {}
        self.image_requests: List[str] = []

    async def location(self) -> str:
        return self.url

    async def title(self) -> str:
        return self._title

    async def outer_html(self) -> str:
        return self.html

    async def style_sheets(self, max_depth: int) -> List[StyleSheetNode]:
        return list(self.sheets)

    async def inline_style_texts(self) -> List[str]:
        return list(self.inline_styles)

    async def image(self, src: str, wait_seconds: float) -> LiveImage:
        self.image_requests.append(src)
        return self.images.get(src, LiveImage(status=ImageStatus.MISSING))

    async def canvases(self) -> List[CanvasImage]:
        return list(self._canvases)

    async def frame_html(self, src: str) -> Optional[str]:
        return self.frames.get(src)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")


@pytest.fixture
def fake_fetcher_factory():
    """Build fake fetchers with canned resources and style sheet texts."""
    return FakeFetcher


@pytest.fixture
def live_document_factory():
    """Build fake live documents."""
    return FakeLiveDocument


@pytest.fixture
def png_data_url():
    return PNG_DATA_URL


@pytest.fixture
def sample_page_html():
    """A page exercising every kind of resource the pipeline handles."""
    return """<!DOCTYPE html>
<html>
<head>
    <title>Sample</title>
    <base href="https://example.com/">
    <link rel="stylesheet" href="/static/site.css">
    <link rel="preload" href="/static/font.woff2" as="font">
    <style>body { background: url('/img/bg.png'); }</style>
    <script src="/static/app.js"></script>
</head>
<body onload="init()">
    <h1>Sample</h1>
    <img src="/img/logo.png" srcset="/img/logo@2x.png 2x" loading="lazy" alt="Logo">
    <div style="background-image: url(/img/hero.jpg)">Hero</div>
    <a href="javascript:alert(1)">Click</a>
    <canvas id="chart" width="300" height="150"></canvas>
    <svg><image href="/img/icon.svg"></image></svg>
    <iframe src="https://example.com/frame" width="400" height="300"></iframe>
    <noscript>Enable JavaScript</noscript>
    <script>console.log('inline');</script>
</body>
</html>"""
