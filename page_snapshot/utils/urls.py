"""URL helpers shared by the capture pipeline and the capture trigger.

Resolution mirrors what a browser does for a relative reference found in
a document or style sheet: the reference is joined against a base URL and
the result must carry a scheme the fetcher knows how to retrieve.
"""

from typing import Optional
from urllib.parse import urljoin, urlparse


class URLResolutionError(Exception):
    """Raised when a reference cannot be resolved to an absolute URL."""
    pass


FETCHABLE_SCHEMES = frozenset({'http', 'https'})

# Pages the browser owns; their DOM is not reachable from a capture.
PRIVILEGED_SCHEMES = frozenset({
    'chrome',
    'chrome-extension',
    'edge',
    'about',
    'devtools',
    'view-source',
    'moz-extension',
})


def is_data_url(url: str) -> bool:
    """Check whether a reference is already an inline data URL."""
    return url.strip()[:5].lower() == 'data:'


def is_fragment_only(url: str) -> bool:
    return url.strip().startswith('#')


def resolve(url: str, base_url: Optional[str] = None) -> str:
    """Resolve a reference against a base URL.

    Args:
        url: Reference as written in markup or CSS
        base_url: Document or style sheet URL used as the base

    Returns:
        Absolute http(s) URL

    Raises:
        URLResolutionError: If the reference is empty, malformed, or
            resolves to a scheme that cannot be fetched
    """
    if not url or not url.strip():
        raise URLResolutionError("Empty URL reference")

    reference = url.strip()

    try:
        absolute = urljoin(base_url, reference) if base_url else reference
        parsed = urlparse(absolute)
        # Accessing port validates the authority section
        parsed.port
    except ValueError as e:
        raise URLResolutionError(f"Malformed URL {reference!r}: {e}")

    if parsed.scheme.lower() not in FETCHABLE_SCHEMES:
        raise URLResolutionError(f"Unsupported scheme in URL {absolute!r}")

    if not parsed.netloc:
        raise URLResolutionError(f"Missing host in URL {absolute!r}")

    return absolute


def is_privileged_page(url: str) -> bool:
    """Check whether a page URL belongs to the browser itself."""
    scheme = urlparse(url.strip()).scheme.lower()
    return scheme in PRIVILEGED_SCHEMES
