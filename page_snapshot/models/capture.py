"""Pydantic models describing the outcome of a page capture.

A capture either produces a complete self-contained document or fails with
a single human-readable reason. Partial outcomes are never reported: a
resource that could not be inlined keeps its original reference inside an
otherwise successful document.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CaptureState(str, Enum):
    """Stages a capture moves through, in order."""
    IDLE = "idle"
    STYLES_RESOLVING = "styles_resolving"
    RESOURCES_INLINING = "resources_inlining"
    ASSEMBLING = "assembling"
    DONE = "done"


class CaptureResult(BaseModel):
    """Result of one capture.

    ``success=True`` implies ``html`` is present and ``error`` is absent.
    ``success=False`` implies ``error`` is a non-empty message and ``html``
    is absent.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: bool
    html: Optional[str] = None
    title: Optional[str] = None
    source_url: Optional[str] = Field(default=None, alias="sourceUrl")
    error: Optional[str] = None

    @field_validator('error')
    @classmethod
    def strip_error(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        return v or None

    @model_validator(mode='after')
    def check_outcome(self) -> 'CaptureResult':
        if self.success:
            if self.html is None:
                raise ValueError("successful capture requires html")
            if self.error is not None:
                raise ValueError("successful capture cannot carry an error")
        else:
            if not self.error:
                raise ValueError("failed capture requires a non-empty error")
            if self.html is not None:
                raise ValueError("failed capture cannot carry html")
        return self

    @classmethod
    def succeeded(cls, html: str, title: Optional[str], source_url: Optional[str]) -> 'CaptureResult':
        return cls(success=True, html=html, title=title, source_url=source_url)

    @classmethod
    def failed(cls, error: str, source_url: Optional[str] = None) -> 'CaptureResult':
        message = (error or "").strip() or "Unknown capture error"
        return cls(success=False, error=message, source_url=source_url)
