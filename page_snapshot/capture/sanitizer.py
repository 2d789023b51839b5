"""Document sanitizer for captured snapshots.

Strips everything that would execute code or reach the network once the
snapshot is opened: script elements, inline event handlers, ``javascript:``
links, and the external style and resource hints whose content has already
been inlined.
"""

import logging
from typing import Dict

from bs4 import BeautifulSoup


logger = logging.getLogger(__name__)


def rel_values(tag) -> set:
    """Lower-cased ``rel`` tokens of a tag."""
    rel = tag.get('rel') or []
    if isinstance(rel, str):
        rel = rel.split()
    return {value.lower() for value in rel}


class DocumentSanitizer:
    """Removes executable and external content from a parsed document."""

    REMOVED_ELEMENTS = ('script', 'noscript')

    LINK_ATTRIBUTES = ('href', 'xlink:href', 'src', 'action', 'formaction')

    EXTERNAL_LINK_RELS = frozenset({
        'stylesheet',
        'preload',
        'prefetch',
        'modulepreload',
        'preconnect',
        'dns-prefetch',
    })

    def sanitize(self, soup: BeautifulSoup) -> Dict[str, int]:
        """Sanitize a parsed document in place.

        Returns:
            Counts of removed elements and attributes
        """
        stats = self.remove_scripts(soup)
        stats['external_resources'] = self.remove_external_resources(soup)
        logger.debug(f"Sanitized document: {stats}")
        return stats

    def remove_scripts(self, soup: BeautifulSoup) -> Dict[str, int]:
        """Remove script elements, event handlers and ``javascript:`` links."""
        elements = 0
        for element in soup.find_all(list(self.REMOVED_ELEMENTS)):
            element.extract()
            elements += 1

        attributes = 0
        for tag in soup.find_all(True):
            for name in list(tag.attrs):
                if name.lower().startswith('on') or self._is_script_link(name, tag.attrs[name]):
                    del tag[name]
                    attributes += 1

        return {'scripts': elements, 'attributes': attributes}

    def remove_external_resources(self, soup: BeautifulSoup) -> int:
        """Remove linked style sheets, resource hints and style blocks."""
        removed = 0
        for link in soup.find_all('link'):
            if rel_values(link) & self.EXTERNAL_LINK_RELS:
                link.extract()
                removed += 1

        for style in soup.find_all('style'):
            style.extract()
            removed += 1

        return removed

    def sanitize_markup(self, html: str) -> str:
        """Sanitize a markup string and return the sanitized markup."""
        soup = BeautifulSoup(html, 'html.parser')
        self.sanitize(soup)
        return str(soup)

    def _is_script_link(self, name: str, value) -> bool:
        if name.lower() not in self.LINK_ATTRIBUTES:
            return False
        if isinstance(value, list):
            value = ' '.join(value)
        return str(value).strip().lower().startswith('javascript:')
