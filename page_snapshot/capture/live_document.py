"""Read-only access to the document being captured.

The capture pipeline never mutates the page it captures. Everything it
needs from the live page (style sheet rules, decoded image pixels, drawn
canvases, same-origin frame content) is read through ``LiveDocument``.

Two implementations are provided:

* ``PlaywrightLiveDocument`` reads a rendered page through Playwright.
* ``StaticDocument`` wraps saved HTML markup. It has no rendering engine,
  so linked style sheets are reported as unreadable (and are fetched out of
  band), images have no decoded pixels, canvases are blank and frames are
  never readable.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from playwright.async_api import Page

from ..utils.urls import is_data_url
from .sanitizer import rel_values


logger = logging.getLogger(__name__)


@dataclass
class StyleSheetNode:
    """A style sheet and its imports as seen by the live document.

    ``rules`` is None when the browser refuses to expose the rules
    (typically a cross-origin sheet). Imported sheets appear as nested
    nodes in rule order.
    """
    href: Optional[str] = None
    rules: Optional[List[Union[str, 'StyleSheetNode']]] = None

    @property
    def readable(self) -> bool:
        return self.rules is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StyleSheetNode':
        rules = data.get('rules')
        if rules is not None:
            rules = [
                rule if isinstance(rule, str) else cls.from_dict(rule)
                for rule in rules
            ]
        return cls(href=data.get('href'), rules=rules)


class ImageStatus(str, Enum):
    """Outcome of reading a live image element."""
    ENCODED = "encoded"        # pixels re-encoded to a data URL
    INLINE = "inline"          # source already a data URL
    MISSING = "missing"        # no live element with that source
    TAINTED = "tainted"        # pixels not readable (cross-origin)
    UNDECODED = "undecoded"    # image never decoded


@dataclass
class LiveImage:
    status: ImageStatus
    data_url: Optional[str] = None
    current_src: Optional[str] = None


@dataclass
class CanvasImage:
    """Drawn content of a live canvas; ``data_url`` is None when tainted."""
    data_url: Optional[str] = None
    style: str = ""
    width: Optional[int] = None
    height: Optional[int] = None


class LiveDocument(ABC):
    """Read-only capability over the document being captured."""

    @abstractmethod
    async def location(self) -> str:
        """Current document URL."""
        pass

    @abstractmethod
    async def title(self) -> str:
        pass

    @abstractmethod
    async def outer_html(self) -> str:
        """Serialized markup of the whole document."""
        pass

    @abstractmethod
    async def style_sheets(self, max_depth: int) -> List[StyleSheetNode]:
        """Document style sheets in order, with imports nested up to ``max_depth``."""
        pass

    @abstractmethod
    async def inline_style_texts(self) -> List[str]:
        """Text of every ``<style>`` element in document order."""
        pass

    @abstractmethod
    async def image(self, src: str, wait_seconds: float) -> LiveImage:
        """Read the live image whose ``src`` attribute equals ``src``."""
        pass

    @abstractmethod
    async def canvases(self) -> List[CanvasImage]:
        """Drawn content of every canvas in document order."""
        pass

    @abstractmethod
    async def frame_html(self, src: str) -> Optional[str]:
        """Markup of the frame whose ``src`` equals ``src``, if it can be read."""
        pass


_STYLE_SHEETS_JS = '''
(maxDepth) => {
    const describe = (sheet, depth) => {
        const node = { href: sheet.href || null, rules: null };
        if (depth > maxDepth) {
            node.rules = [];
            return node;
        }
        let rules;
        try {
            rules = sheet.cssRules || sheet.rules;
        } catch (e) {
            return node;
        }
        if (!rules) return node;
        node.rules = [];
        for (const rule of rules) {
            if (rule.type === CSSRule.IMPORT_RULE && rule.styleSheet) {
                node.rules.push(describe(rule.styleSheet, depth + 1));
            } else {
                node.rules.push(rule.cssText);
            }
        }
        return node;
    };
    return Array.from(document.styleSheets).map(sheet => describe(sheet, 0));
}
'''

_INLINE_STYLES_JS = '''
() => Array.from(document.querySelectorAll('style'))
    .map(style => style.textContent)
    .filter(text => !!text)
'''

_IMAGE_JS = '''
async ([src, waitMs]) => {
    const img = Array.from(document.querySelectorAll('img'))
        .find(el => el.getAttribute('src') === src);
    if (!img) return { status: 'missing' };
    if (!img.src || img.src.startsWith('data:')) {
        return { status: 'inline', data_url: img.src || null, current_src: img.src || null };
    }
    if (!img.complete) {
        await new Promise(resolve => {
            img.addEventListener('load', resolve, { once: true });
            img.addEventListener('error', resolve, { once: true });
            setTimeout(resolve, waitMs);
        });
    }
    if (img.naturalWidth === 0) {
        return { status: 'undecoded', current_src: img.src };
    }
    try {
        const canvas = document.createElement('canvas');
        canvas.width = img.naturalWidth;
        canvas.height = img.naturalHeight;
        canvas.getContext('2d').drawImage(img, 0, 0);
        return { status: 'encoded', data_url: canvas.toDataURL('image/png'), current_src: img.src };
    } catch (e) {
        return { status: 'tainted', current_src: img.src };
    }
}
'''

_CANVASES_JS = '''
() => Array.from(document.querySelectorAll('canvas')).map(canvas => {
    let dataUrl = null;
    try {
        dataUrl = canvas.toDataURL();
    } catch (e) {}
    return {
        data_url: dataUrl,
        style: window.getComputedStyle(canvas).cssText,
        width: canvas.width,
        height: canvas.height,
    };
})
'''

_FRAME_JS = '''
(src) => {
    const frame = Array.from(document.querySelectorAll('iframe'))
        .find(el => el.getAttribute('src') === src);
    if (!frame) return null;
    try {
        const doc = frame.contentDocument;
        if (doc && doc.body) return doc.documentElement.outerHTML;
    } catch (e) {}
    return null;
}
'''


class PlaywrightLiveDocument(LiveDocument):
    """Live document backed by a rendered Playwright page."""

    def __init__(self, page: Page):
        self.page = page

    async def location(self) -> str:
        return self.page.url

    async def title(self) -> str:
        return await self.page.title()

    async def outer_html(self) -> str:
        return await self.page.content()

    async def style_sheets(self, max_depth: int) -> List[StyleSheetNode]:
        sheets = await self.page.evaluate(_STYLE_SHEETS_JS, max_depth)
        return [StyleSheetNode.from_dict(sheet) for sheet in sheets or []]

    async def inline_style_texts(self) -> List[str]:
        return list(await self.page.evaluate(_INLINE_STYLES_JS) or [])

    async def image(self, src: str, wait_seconds: float) -> LiveImage:
        data = await self.page.evaluate(_IMAGE_JS, [src, int(wait_seconds * 1000)])
        return LiveImage(
            status=ImageStatus(data.get('status', ImageStatus.MISSING.value)),
            data_url=data.get('data_url'),
            current_src=data.get('current_src'),
        )

    async def canvases(self) -> List[CanvasImage]:
        data = await self.page.evaluate(_CANVASES_JS)
        return [
            CanvasImage(
                data_url=item.get('data_url'),
                style=item.get('style') or "",
                width=item.get('width'),
                height=item.get('height'),
            )
            for item in data or []
        ]

    async def frame_html(self, src: str) -> Optional[str]:
        return await self.page.evaluate(_FRAME_JS, src)

    def __repr__(self) -> str:
        return f"PlaywrightLiveDocument(url={self.page.url})"


class StaticDocument(LiveDocument):
    """Live document view over saved HTML markup."""

    def __init__(self, html: str, url: str, title: Optional[str] = None):
        """Initialize from markup.

        Args:
            html: Saved document markup
            url: URL the markup was saved from; base for relative references
            title: Title override; defaults to the ``<title>`` element
        """
        self.html = html
        self.url = url
        self._soup = BeautifulSoup(html, 'html.parser')
        self._title = title

    async def location(self) -> str:
        return self.url

    async def title(self) -> str:
        if self._title is not None:
            return self._title
        if self._soup.title and self._soup.title.string:
            return self._soup.title.string.strip()
        return ""

    async def outer_html(self) -> str:
        return self.html

    async def style_sheets(self, max_depth: int) -> List[StyleSheetNode]:
        sheets = []
        for link in self._soup.find_all('link', href=True):
            if 'stylesheet' not in rel_values(link):
                continue
            sheets.append(StyleSheetNode(href=urljoin(self.url, link['href'].strip()), rules=None))
        return sheets

    async def inline_style_texts(self) -> List[str]:
        texts = (style.get_text() for style in self._soup.find_all('style'))
        return [text for text in texts if text]

    async def image(self, src: str, wait_seconds: float) -> LiveImage:
        img = self._soup.find('img', attrs={'src': src})
        if img is None:
            return LiveImage(status=ImageStatus.MISSING)
        if is_data_url(src):
            return LiveImage(status=ImageStatus.INLINE, data_url=src.strip(), current_src=src.strip())
        return LiveImage(status=ImageStatus.UNDECODED, current_src=urljoin(self.url, src.strip()))

    async def canvases(self) -> List[CanvasImage]:
        return []

    async def frame_html(self, src: str) -> Optional[str]:
        return None

    def __repr__(self) -> str:
        return f"StaticDocument(url={self.url}, size={len(self.html)})"
