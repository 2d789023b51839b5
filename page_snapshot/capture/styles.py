"""Style resolution: turn every style sheet of a document into self-contained CSS.

Each ``url(x)``, ``url('x')`` or ``url("x")`` reference is replaced by an
inline data URL where the referenced resource can be fetched. References that
cannot be fetched, and padded forms such as ``url( x )``, are left exactly as
written. ``@import`` chains are flattened up to a fixed depth so cyclic
imports always terminate.
"""

import logging
import re
from typing import FrozenSet, List, Optional, Union
from urllib.parse import urljoin

from .config import CaptureConfig
from .fallback import gather_settled, log_failures
from .fetcher import ResourceFetcher
from .live_document import LiveDocument, StyleSheetNode
from ..utils.urls import is_data_url, is_fragment_only


logger = logging.getLogger(__name__)

# url(x), url('x'), url("x") with optional inner whitespace
URL_PATTERN = re.compile(r'''url\(\s*['"]?([^'")]+?)['"]?\s*\)''')

# @import url(x) media; / @import "x" media;
IMPORT_PATTERN = re.compile(
    r'''@import\s+(?:url\(\s*['"]?([^'")]+?)['"]?\s*\)|['"]([^'"]+)['"])\s*([^;]*);''',
    re.IGNORECASE
)


class StyleResolver:
    """Resolves style sheets and CSS text into inlined CSS."""

    def __init__(self, fetcher: ResourceFetcher, config: Optional[CaptureConfig] = None):
        self.fetcher = fetcher
        self.config = config or CaptureConfig()
        self.max_import_depth = self.config.max_import_depth

    async def resolve_urls(self, css_text: str, base_url: Optional[str]) -> str:
        """Replace every fetchable ``url(...)`` reference with a data URL.

        Args:
            css_text: CSS text to rewrite
            base_url: URL relative references are resolved against

        Returns:
            Rewritten CSS; unchanged when there is nothing to resolve
        """
        if not css_text or 'url(' not in css_text:
            return css_text

        references = [
            ref for ref in dict.fromkeys(URL_PATTERN.findall(css_text))
            if not is_data_url(ref) and not is_fragment_only(ref)
        ]
        if not references:
            return css_text

        results = await gather_settled(*[self.fetcher.fetch(ref, base_url) for ref in references])
        resolved = {
            ref: result
            for ref, result in zip(references, results)
            if isinstance(result, str)
        }
        logger.debug(
            f"Resolved {len(resolved)}/{len(references)} CSS references (base: {base_url})"
        )
        if not resolved:
            return css_text

        result = css_text
        for ref, data_url in resolved.items():
            replacement = f'url("{data_url}")'
            for written in (f'url("{ref}")', f"url('{ref}')", f'url({ref})'):
                result = result.replace(written, replacement)
        return result

    async def resolve_style_sheet(
        self,
        node: StyleSheetNode,
        depth: int = 0,
        document_url: Optional[str] = None
    ) -> str:
        """Resolve one style sheet and its imports into CSS text.

        Args:
            node: Style sheet as exposed by the live document
            depth: Current import nesting level
            document_url: Base for sheets without their own URL

        Returns:
            Flattened, inlined CSS, or an empty string when nothing is recoverable
        """
        if depth > self.max_import_depth:
            logger.debug(f"Import depth {depth} exceeds limit, skipping {node.href}")
            return ""

        base_url = node.href or document_url

        if node.readable:
            return await self._resolve_rules(node.rules, base_url, depth, document_url)

        if not node.href:
            return ""

        logger.debug(f"Rules not readable, fetching style sheet: {node.href}")
        text = await self.fetcher.fetch_text(node.href, document_url)
        if text is None:
            logger.info(f"Style sheet unavailable: {node.href}")
            return ""
        return await self._resolve_fetched(text, node.href, depth, frozenset({node.href}))

    async def resolve_document(self, live: LiveDocument) -> str:
        """Resolve all style sheets and inline style blocks of a document.

        Sheets are resolved independently; the non-blank results are joined
        with newlines in document order.
        """
        location = await live.location()
        sheets = await live.style_sheets(self.max_import_depth)
        inline_texts = await live.inline_style_texts()

        logger.info(
            f"Resolving {len(sheets)} style sheets and {len(inline_texts)} style blocks"
        )

        results = await gather_settled(
            *[self.resolve_style_sheet(sheet, 0, location) for sheet in sheets],
            *[self.resolve_urls(text, location) for text in inline_texts],
        )
        log_failures(results, "Style resolution")

        return '\n'.join(
            result for result in results
            if isinstance(result, str) and result.strip()
        )

    async def _resolve_rules(
        self,
        rules: List[Union[str, StyleSheetNode]],
        base_url: Optional[str],
        depth: int,
        document_url: Optional[str]
    ) -> str:
        # Consecutive rule texts resolve against this sheet's base; imported
        # sheets resolve against their own.
        tasks = []
        run: List[str] = []
        for rule in rules:
            if isinstance(rule, StyleSheetNode):
                if run:
                    tasks.append(self.resolve_urls(''.join(run), base_url))
                    run = []
                tasks.append(self.resolve_style_sheet(rule, depth + 1, document_url))
            else:
                run.append(rule + '\n')
        if run:
            tasks.append(self.resolve_urls(''.join(run), base_url))

        results = await gather_settled(*tasks)
        log_failures(results, "Rule resolution")
        return ''.join(result for result in results if isinstance(result, str))

    async def _resolve_fetched(
        self,
        css_text: str,
        href: str,
        depth: int,
        chain: FrozenSet[str]
    ) -> str:
        """Resolve fetched sheet text, expanding its @import statements in place."""
        segments = []
        position = 0
        for match in IMPORT_PATTERN.finditer(css_text):
            if match.start() > position:
                segments.append(self.resolve_urls(css_text[position:match.start()], href))
            target = match.group(1) or match.group(2)
            segments.append(self._resolve_import(
                match.group(0), target, match.group(3).strip(), href, depth + 1, chain
            ))
            position = match.end()
        if position < len(css_text):
            segments.append(self.resolve_urls(css_text[position:], href))

        results = await gather_settled(*segments)
        log_failures(results, "Imported style resolution")
        return ''.join(result for result in results if isinstance(result, str))

    async def _resolve_import(
        self,
        statement: str,
        target: str,
        media: str,
        base_url: str,
        depth: int,
        chain: FrozenSet[str]
    ) -> str:
        if depth > self.max_import_depth:
            return ""

        href = urljoin(base_url, target.strip())
        if href in chain:
            logger.debug(f"Import cycle detected at {href}")
            return ""

        text = await self.fetcher.fetch_text(href)
        if text is None:
            logger.info(f"Imported style sheet unavailable: {href}")
            return statement

        resolved = await self._resolve_fetched(text, href, depth, chain | {href})
        if media and resolved.strip():
            return f"@media {media} {{\n{resolved}}}\n"
        return resolved
