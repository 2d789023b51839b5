"""Playwright browser lifecycle for page captures.

A capture needs one browser and one throwaway context per page, so that
cookies and cache from one capture never leak into the next.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Dict, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    BrowserType,
    Page,
    Playwright,
    async_playwright,
)

logger = logging.getLogger(__name__)


class BrowserEngineType:
    """Supported browser engine types."""
    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"

    ALL = (CHROMIUM, FIREFOX, WEBKIT)


@dataclass
class BrowserConfig:
    """Browser settings used for captures."""

    engine: str = BrowserEngineType.CHROMIUM
    headless: bool = True
    viewport: Dict[str, int] = field(default_factory=lambda: {'width': 1920, 'height': 1080})
    user_agent: Optional[str] = None
    ignore_https_errors: bool = False

    def launch_options(self) -> Dict[str, Any]:
        return {'headless': self.headless}

    def context_options(self) -> Dict[str, Any]:
        """Options for a fresh capture context."""
        options: Dict[str, Any] = {'viewport': self.viewport}
        if self.user_agent:
            options['user_agent'] = self.user_agent
        if self.ignore_https_errors:
            options['ignore_https_errors'] = True
        return options


class BrowserFactory:
    """Owns a launched browser and hands out one-page contexts."""

    def __init__(self, config: Optional[BrowserConfig] = None):
        self.config = config or BrowserConfig()
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self._open_contexts = 0

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    def _browser_type(self) -> BrowserType:
        engines = {
            BrowserEngineType.FIREFOX: self.playwright.firefox,
            BrowserEngineType.WEBKIT: self.playwright.webkit,
        }
        return engines.get(self.config.engine, self.playwright.chromium)

    async def start(self) -> None:
        """Start Playwright and launch the configured engine."""
        if self.browser is not None:
            logger.warning("Browser already launched")
            return

        logger.info(f"Launching {self.config.engine} (headless={self.config.headless})")
        try:
            self.playwright = await async_playwright().start()
            self.browser = await self._browser_type().launch(**self.config.launch_options())
        except Exception as e:
            logger.error(f"Browser launch failed: {e}")
            await self.stop()
            raise

    async def stop(self) -> None:
        """Close the browser and stop Playwright. Errors are logged, not raised."""
        try:
            if self.browser is not None:
                await self.browser.close()
            if self.playwright is not None:
                await self.playwright.stop()
        except Exception as e:
            logger.error(f"Error shutting down browser: {e}")
        finally:
            self.browser = None
            self.playwright = None
            self._open_contexts = 0

    async def create_context(self) -> BrowserContext:
        """Open an isolated context.

        Raises:
            RuntimeError: If the browser has not been launched
        """
        if self.browser is None:
            raise RuntimeError("Browser factory not started. Call start() first.")

        context = await self.browser.new_context(**self.config.context_options())
        self._open_contexts += 1
        return context

    @asynccontextmanager
    async def page(self) -> AsyncGenerator[Page, None]:
        """Yield a page whose context is closed on exit."""
        context = await self.create_context()
        try:
            yield await context.new_page()
        finally:
            await context.close()
            self._open_contexts -= 1

    @property
    def is_running(self) -> bool:
        return self.browser is not None

    @property
    def context_count(self) -> int:
        return self._open_contexts

    def __repr__(self) -> str:
        return f"BrowserFactory(engine={self.config.engine}, running={self.is_running})"
