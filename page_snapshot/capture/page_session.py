"""Page session: navigate to a page and wait until it is ready to capture.

A wait that times out is not fatal. The page is captured in whatever
state it reached, which mirrors capturing a tab the user is looking at.
"""

import logging
from typing import Optional

from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from .live_document import PlaywrightLiveDocument

logger = logging.getLogger(__name__)


class WaitStrategy:
    """Available wait strategies for page load completion."""
    NETWORKIDLE = "networkidle"
    LOAD = "load"
    DOMCONTENTLOADED = "domcontentloaded"
    TIMEOUT = "timeout"

    ALL = (NETWORKIDLE, LOAD, DOMCONTENTLOADED, TIMEOUT)


class PageSessionConfig:
    """Configuration for page navigation and load waiting."""

    def __init__(
        self,
        wait_strategy: str = WaitStrategy.NETWORKIDLE,
        wait_timeout_ms: int = 30000,
        navigation_timeout_ms: int = 30000,
        settle_ms: int = 0,
    ):
        """Initialize page session configuration.

        Args:
            wait_strategy: Strategy for determining page load completion
            wait_timeout_ms: Maximum time to wait for the strategy's condition
            navigation_timeout_ms: Maximum time for the initial navigation
            settle_ms: Extra delay after load completion (lazy content, animations)
        """
        if wait_strategy not in WaitStrategy.ALL:
            raise ValueError(f"Unknown wait strategy: {wait_strategy}")
        self.wait_strategy = wait_strategy
        self.wait_timeout_ms = wait_timeout_ms
        self.navigation_timeout_ms = navigation_timeout_ms
        self.settle_ms = settle_ms


class PageSession:
    """Loads one page and exposes it as a live document."""

    def __init__(self, page: Page, config: Optional[PageSessionConfig] = None):
        self.page = page
        self.config = config or PageSessionConfig()
        self.final_url: Optional[str] = None
        self.load_timed_out = False

    async def open(self, url: str) -> PlaywrightLiveDocument:
        """Navigate to ``url`` and wait for it to load.

        Raises:
            playwright.async_api.Error: If navigation itself fails
        """
        response = await self.page.goto(
            url,
            timeout=self.config.navigation_timeout_ms,
            wait_until="commit"
        )
        if response:
            self.final_url = response.url
        logger.debug(f"Navigation committed: {url}")

        await self._wait_for_load_completion()

        if self.config.settle_ms:
            await self.page.wait_for_timeout(self.config.settle_ms)

        return PlaywrightLiveDocument(self.page)

    async def _wait_for_load_completion(self) -> None:
        try:
            if self.config.wait_strategy == WaitStrategy.TIMEOUT:
                await self.page.wait_for_timeout(self.config.wait_timeout_ms)
            else:
                await self.page.wait_for_load_state(
                    self.config.wait_strategy,
                    timeout=self.config.wait_timeout_ms
                )
            logger.debug(f"Load completion detected: {self.config.wait_strategy}")

        except PlaywrightTimeoutError:
            logger.warning(f"Load wait timeout ({self.config.wait_strategy}), capturing current state")
            self.load_timed_out = True

    def __repr__(self) -> str:
        return (
            f"PageSession(url={self.final_url or self.page.url}, "
            f"strategy={self.config.wait_strategy}, timed_out={self.load_timed_out})"
        )
