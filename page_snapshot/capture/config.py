"""Configuration for the capture pipeline.

Timeouts and recursion bounds used while resolving styles and inlining
resources. Browser launch settings live in ``BrowserConfig`` and page
load settings in ``PageSessionConfig``.
"""

from typing import Optional

from pydantic import BaseModel, Field


DEFAULT_USER_AGENT = "PageSnapshot/1.0"


class CaptureConfig(BaseModel):
    """Settings for one capture run."""

    fetch_timeout_seconds: float = Field(
        default=10.0, gt=0, le=120.0,
        description="Maximum time for a single resource fetch"
    )
    image_load_timeout_seconds: float = Field(
        default=2.0, ge=0, le=30.0,
        description="How long to wait for a live image to finish loading"
    )
    max_import_depth: int = Field(
        default=5, ge=0, le=32,
        description="Maximum nesting of @import rules that is followed"
    )
    max_concurrent_fetches: Optional[int] = Field(
        default=None, ge=1,
        description="Upper bound on in-flight fetches (unbounded when unset)"
    )
    user_agent: str = Field(default=DEFAULT_USER_AGENT)
