"""Capture trigger services."""

from .capture_service import CaptureError, CaptureService

__all__ = [
    "CaptureError",
    "CaptureService",
]
