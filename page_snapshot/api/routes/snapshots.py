"""Snapshot upload and serving routes.

Uploads are read from the raw request so the declared body size can be
checked before the body is parsed.
"""

import json
import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response
from pydantic import ValidationError

from page_snapshot.api.schemas import ErrorResponse, UploadRequest, UploadResponse
from page_snapshot.api.services import (
    IdentifierExhaustedError,
    InvalidPayloadError,
    PayloadTooLargeError,
    SnapshotExpiredError,
    SnapshotNotFoundError,
    SnapshotService,
)
from page_snapshot.persistence.config import StoreConfig
from page_snapshot.persistence.expiration import format_expiration
from page_snapshot.persistence.storage import SnapshotStoreError, create_snapshot_store

logger = logging.getLogger(__name__)

upload_router = APIRouter(
    tags=["Snapshots"],
    responses={
        400: {"model": ErrorResponse, "description": "Bad Request"},
        413: {"model": ErrorResponse, "description": "Content Too Large"},
        500: {"model": ErrorResponse, "description": "Internal Server Error"},
    }
)

serve_router = APIRouter(
    tags=["Snapshots"],
    responses={
        404: {"model": ErrorResponse, "description": "Snapshot Not Found"},
        410: {"model": ErrorResponse, "description": "Snapshot Expired"},
        500: {"model": ErrorResponse, "description": "Internal Server Error"},
    }
)


# Shared service instance so the in-memory backend keeps state across requests
_snapshot_service_instance: Optional[SnapshotService] = None


def get_snapshot_service() -> SnapshotService:
    """Dependency to provide the snapshot service instance."""
    global _snapshot_service_instance
    if _snapshot_service_instance is None:
        config = StoreConfig.from_environment()
        config.validate()
        if config.backend == "local":
            store = create_snapshot_store("local", base_path=config.storage_path)
        else:
            store = create_snapshot_store(config.backend)
        _snapshot_service_instance = SnapshotService(store, config)
        logger.info(f"Snapshot service initialized with {config.backend} backend")
    return _snapshot_service_instance


def set_snapshot_service(service: Optional[SnapshotService]) -> None:
    """Replace the shared service instance (used by the CLI and tests)."""
    global _snapshot_service_instance
    _snapshot_service_instance = service


@upload_router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Upload snapshot",
    description="""
    Store a captured document and return its identifier and public URL.

    The body is JSON: `{ html, compressed, title?, sourceUrl?, expiresIn? }`.
    When `compressed` is true, `html` holds the base64-encoded gzip of the
    document. `expiresIn` accepts `<n>m`, `<n>h`, `<n>d` or `never`; any other
    value means the snapshot never expires.
    """
)
async def upload_snapshot(
    request: Request,
    service: SnapshotService = Depends(get_snapshot_service)
) -> UploadResponse:
    """Accept a snapshot upload."""
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > service.config.max_upload_bytes:
        raise HTTPException(status_code=413, detail="Content too large")

    try:
        body = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")

    try:
        upload = UploadRequest.model_validate(body)
    except ValidationError as e:
        fields = ", ".join(".".join(str(loc) for loc in error["loc"]) for error in e.errors())
        raise HTTPException(status_code=400, detail=f"Invalid upload request: {fields}")

    base_url = service.config.public_base_url or str(request.base_url)

    try:
        return await service.create_snapshot(upload, base_url)

    except InvalidPayloadError as e:
        raise HTTPException(status_code=400, detail=str(e))

    except PayloadTooLargeError as e:
        raise HTTPException(status_code=413, detail=str(e))

    except (SnapshotStoreError, IdentifierExhaustedError) as e:
        logger.error(f"Failed to store snapshot: {e}")
        raise HTTPException(status_code=500, detail=f"Upload failed: {e}")


@serve_router.get(
    "/{snapshot_id}",
    summary="Serve snapshot",
    description="Return a stored snapshot document. Expired snapshots are deleted on access.",
    response_class=Response,
)
async def serve_snapshot(
    snapshot_id: str,
    service: SnapshotService = Depends(get_snapshot_service)
) -> Response:
    """Serve a stored snapshot."""
    try:
        snapshot = await service.get_snapshot(snapshot_id)

    except SnapshotNotFoundError:
        raise HTTPException(status_code=404, detail="Snapshot not found")

    except SnapshotExpiredError:
        raise HTTPException(status_code=410, detail="Snapshot has expired")

    except SnapshotStoreError as e:
        logger.error(f"Failed to read snapshot {snapshot_id}: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving snapshot")

    headers = {"Cache-Control": f"public, max-age={service.cache_max_age(snapshot)}"}

    expires_at = format_expiration(snapshot.metadata.expires_at)
    if expires_at:
        headers["X-Expires-At"] = expires_at

    if snapshot.metadata.source_url:
        headers["X-Source-Url"] = quote(snapshot.metadata.source_url, safe=":/?#[]@!$&'()*+,;=%~")

    return Response(
        content=snapshot.content,
        media_type=snapshot.metadata.content_type,
        headers=headers,
    )
