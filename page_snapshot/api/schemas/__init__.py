"""API schemas for the snapshot store."""

from .requests import UploadRequest
from .responses import ErrorResponse, HealthResponse, UploadResponse

__all__ = [
    "UploadRequest",
    "UploadResponse",
    "ErrorResponse",
    "HealthResponse",
]
