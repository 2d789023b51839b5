"""Resource inliner: rewrites a cloned document so it needs no network access.

Four passes run concurrently over the clone (images, inline-style
backgrounds, SVG images, canvases); frames are handled afterwards. A
resource that cannot be inlined keeps its original reference, and a frame
that cannot be read becomes a neutral placeholder.
"""

import logging
from typing import Dict, Optional

from bs4 import BeautifulSoup, Tag

from .config import CaptureConfig
from .fallback import first_available, gather_settled, log_failures
from .fetcher import ResourceFetcher
from .live_document import ImageStatus, LiveDocument, LiveImage
from .sanitizer import DocumentSanitizer
from .styles import StyleResolver
from ..utils.urls import is_data_url


logger = logging.getLogger(__name__)

PLACEHOLDER_TEXT = "[Embedded content]"

PLACEHOLDER_STYLE = (
    "width:{width};height:{height};background:#f5f5f5;border:1px dashed #ccc;"
    "display:flex;align-items:center;justify-content:center;color:#666;font:14px system-ui"
)


def frame_placeholder(soup: BeautifulSoup, frame: Tag) -> Tag:
    """Build the placeholder that stands in for an unreadable frame."""
    placeholder = soup.new_tag('div')
    placeholder['style'] = PLACEHOLDER_STYLE.format(
        width=frame.get('width') or '100%',
        height=frame.get('height') or '150px',
    )
    placeholder.string = PLACEHOLDER_TEXT
    return placeholder


class ResourceInliner:
    """Inlines images, backgrounds, SVG images, canvases and frames."""

    def __init__(
        self,
        fetcher: ResourceFetcher,
        style_resolver: StyleResolver,
        sanitizer: Optional[DocumentSanitizer] = None,
        config: Optional[CaptureConfig] = None
    ):
        self.fetcher = fetcher
        self.style_resolver = style_resolver
        self.sanitizer = sanitizer or DocumentSanitizer()
        self.config = config or CaptureConfig()

    async def inline(self, soup: BeautifulSoup, live: LiveDocument, document_url: str) -> Dict[str, int]:
        """Run every inlining pass over ``soup``.

        Args:
            soup: Cloned document, modified in place
            live: Live document the clone was taken from
            document_url: Base URL for relative references

        Returns:
            Number of rewritten elements per pass
        """
        names = ['images', 'backgrounds', 'svg_images', 'canvases']
        results = await gather_settled(
            self.inline_images(soup, live, document_url),
            self.inline_backgrounds(soup, document_url),
            self.inline_svg_images(soup, document_url),
            self.inline_canvases(soup, live),
        )
        log_failures(results, "Inlining pass")

        stats = {
            name: result if isinstance(result, int) else 0
            for name, result in zip(names, results)
        }
        stats['frames'] = await self.inline_frames(soup, live)

        logger.info(f"Inlined resources: {stats}")
        return stats

    async def inline_images(self, soup: BeautifulSoup, live: LiveDocument, document_url: str) -> int:
        """Replace image sources with data URLs and drop responsive variants."""
        images = soup.find_all('img')

        async def inline_image(img: Tag) -> bool:
            src = img.get('src')
            if not src:
                return False

            changed = False
            live_image = await first_available(
                lambda: live.image(src, self.config.image_load_timeout_seconds),
                fallback=LiveImage(status=ImageStatus.MISSING),
            )
            if live_image.status != ImageStatus.MISSING:
                img['src'] = await self._resolve_image(live_image, src, document_url)
                changed = is_data_url(img['src'])

            for attribute in ('srcset', 'loading'):
                if attribute in img.attrs:
                    del img[attribute]
            return changed

        results = await gather_settled(*[inline_image(img) for img in images])
        log_failures(results, "Image inlining")
        return sum(1 for result in results if result is True)

    async def inline_backgrounds(self, soup: BeautifulSoup, document_url: str) -> int:
        """Resolve ``url(...)`` references inside ``style`` attributes."""
        elements = soup.find_all(attrs={'style': lambda value: bool(value) and 'url' in value})

        async def inline_background(element: Tag) -> bool:
            style = element['style']
            resolved = await self.style_resolver.resolve_urls(style, document_url)
            element['style'] = resolved
            return resolved != style

        results = await gather_settled(*[inline_background(element) for element in elements])
        log_failures(results, "Background inlining")
        return sum(1 for result in results if result is True)

    async def inline_svg_images(self, soup: BeautifulSoup, document_url: str) -> int:
        """Fetch ``<image>`` references inside SVG content."""
        images = [
            image for image in soup.find_all('image')
            if image.get('href') or image.get('xlink:href')
        ]

        async def inline_svg_image(image: Tag) -> bool:
            href = image.get('href') or image.get('xlink:href')
            if is_data_url(href):
                return False
            data_url = await self.fetcher.fetch(href, document_url)
            if data_url is None:
                return False
            image['href'] = data_url
            if 'xlink:href' in image.attrs:
                del image['xlink:href']
            return True

        results = await gather_settled(*[inline_svg_image(image) for image in images])
        log_failures(results, "SVG image inlining")
        return sum(1 for result in results if result is True)

    async def inline_canvases(self, soup: BeautifulSoup, live: LiveDocument) -> int:
        """Replace drawn canvases with images of their content.

        Live and cloned canvases correspond by document order. Tainted
        canvases stay as they are.
        """
        live_canvases = await first_available(live.canvases, fallback=[])
        cloned = soup.find_all('canvas')

        replaced = 0
        for canvas, element in zip(live_canvases, cloned):
            if canvas.data_url is None:
                continue
            img = soup.new_tag('img')
            img['src'] = canvas.data_url
            if canvas.style:
                img['style'] = canvas.style
            if canvas.width:
                img['width'] = str(canvas.width)
            if canvas.height:
                img['height'] = str(canvas.height)
            element.replace_with(img)
            replaced += 1
        return replaced

    async def inline_frames(self, soup: BeautifulSoup, live: LiveDocument) -> int:
        """Embed readable frames as ``srcdoc``; replace the rest with placeholders."""
        embedded = 0
        for frame in soup.find_all('iframe'):
            src = frame.get('src') or ''
            markup = None
            if src:
                markup = await first_available(lambda: live.frame_html(src))

            if markup:
                frame['srcdoc'] = self.sanitizer.sanitize_markup(markup)
                del frame['src']
                embedded += 1
            else:
                logger.debug(f"Frame not readable, using placeholder: {src or '(no src)'}")
                frame.replace_with(frame_placeholder(soup, frame))
        return embedded

    async def _resolve_image(self, live_image: LiveImage, src: str, document_url: str) -> str:
        if live_image.status in (ImageStatus.ENCODED, ImageStatus.INLINE) and live_image.data_url:
            return live_image.data_url

        original = live_image.current_src or src
        return await first_available(
            lambda: self.fetcher.fetch(original, document_url),
            fallback=original,
        )
