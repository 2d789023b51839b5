"""Capture orchestrator: produces one self-contained HTML document from a live page.

The live document is only read. Its markup is parsed into an owned clone,
every transformation runs on that clone, and the clone is serialized once
at the end. Any unexpected failure is reported as a failed
``CaptureResult`` instead of propagating.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Doctype

from ..models.capture import CaptureResult, CaptureState
from .config import CaptureConfig
from .fetcher import ResourceFetcher
from .inliner import ResourceInliner
from .live_document import LiveDocument
from .sanitizer import DocumentSanitizer
from .styles import StyleResolver


logger = logging.getLogger(__name__)

DOCTYPE = "<!DOCTYPE html>\n"


class CaptureOrchestrator:
    """Runs the capture pipeline for a single document."""

    def __init__(
        self,
        fetcher: ResourceFetcher,
        config: Optional[CaptureConfig] = None,
        sanitizer: Optional[DocumentSanitizer] = None
    ):
        """Initialize the orchestrator.

        Args:
            fetcher: Resource fetcher shared by every pass
            config: Capture configuration
            sanitizer: Document sanitizer (a default one is created if omitted)
        """
        self.config = config or CaptureConfig()
        self.fetcher = fetcher
        self.sanitizer = sanitizer or DocumentSanitizer()
        self.style_resolver = StyleResolver(fetcher, self.config)
        self.inliner = ResourceInliner(fetcher, self.style_resolver, self.sanitizer, self.config)

        self.state = CaptureState.IDLE
        self.history: List[Tuple[CaptureState, datetime]] = []
        self.stats: Dict[str, int] = {}

    async def capture(self, live: LiveDocument) -> CaptureResult:
        """Capture ``live`` into a self-contained document.

        Returns:
            Successful result with the serialized document, or a failed
            result carrying the error message
        """
        self.state = CaptureState.IDLE
        self.history = []
        self.stats = {}

        source_url = None
        try:
            source_url = await live.location()
            logger.info(f"Capturing page: {source_url}")

            self._transition(CaptureState.STYLES_RESOLVING)
            css_text = await self.style_resolver.resolve_document(live)

            self._transition(CaptureState.RESOURCES_INLINING)
            soup = BeautifulSoup(await live.outer_html(), 'html.parser')
            self.stats.update(self.sanitizer.sanitize(soup))
            self.stats.update(await self.inliner.inline(soup, live, source_url))

            self._transition(CaptureState.ASSEMBLING)
            html = self.assemble(soup, css_text)
            title = await live.title()

            self._transition(CaptureState.DONE)
            logger.info(f"Capture completed: {source_url} ({len(html)} chars)")
            return CaptureResult.succeeded(html=html, title=title, source_url=source_url)

        except Exception as e:
            logger.error(f"Capture failed in state {self.state.value}: {e}", exc_info=True)
            self._transition(CaptureState.DONE)
            return CaptureResult.failed(str(e) or type(e).__name__, source_url=source_url)

    def assemble(self, soup: BeautifulSoup, css_text: str) -> str:
        """Attach resolved styles and metadata to the clone and serialize it."""
        root = soup.find('html')
        if root is None:
            root = soup.new_tag('html')
            for child in list(soup.contents):
                if isinstance(child, Doctype):
                    continue
                root.append(child.extract())
            soup.append(root)

        head = root.find('head')
        if head is None:
            head = soup.new_tag('head')
            root.insert(0, head)

        style = soup.new_tag('style')
        style.string = css_text
        head.append(style)

        if soup.find('meta', charset=True) is None:
            meta = soup.new_tag('meta')
            meta['charset'] = 'UTF-8'
            head.insert(0, meta)

        for base in soup.find_all('base'):
            base.extract()

        return DOCTYPE + str(root)

    def _transition(self, state: CaptureState) -> None:
        logger.debug(f"Capture state: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append((state, datetime.utcnow()))

    def __repr__(self) -> str:
        return f"CaptureOrchestrator(state={self.state.value})"
