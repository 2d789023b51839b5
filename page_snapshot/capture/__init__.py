"""Capture pipeline for page snapshot.

Resolves styles, inlines external resources and sanitizes a document so the
result renders with no network access.
"""

from .browser_factory import BrowserConfig, BrowserEngineType, BrowserFactory
from .config import CaptureConfig
from .fallback import first_available, gather_settled
from .fetcher import ResourceFetcher
from .inliner import ResourceInliner
from .live_document import (
    CanvasImage,
    ImageStatus,
    LiveDocument,
    LiveImage,
    PlaywrightLiveDocument,
    StaticDocument,
    StyleSheetNode,
)
from .orchestrator import CaptureOrchestrator
from .page_session import PageSession, PageSessionConfig, WaitStrategy
from .sanitizer import DocumentSanitizer
from .styles import StyleResolver

__all__ = [
    # Browser
    'BrowserConfig',
    'BrowserEngineType',
    'BrowserFactory',
    'PageSession',
    'PageSessionConfig',
    'WaitStrategy',

    # Pipeline
    'CaptureConfig',
    'CaptureOrchestrator',
    'DocumentSanitizer',
    'ResourceFetcher',
    'ResourceInliner',
    'StyleResolver',
    'first_available',
    'gather_settled',

    # Live document
    'CanvasImage',
    'ImageStatus',
    'LiveDocument',
    'LiveImage',
    'PlaywrightLiveDocument',
    'StaticDocument',
    'StyleSheetNode',
]
