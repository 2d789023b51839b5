"""API routes for the snapshot store."""

from .snapshots import serve_router, upload_router

__all__ = [
    "upload_router",
    "serve_router",
]
