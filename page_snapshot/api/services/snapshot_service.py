"""Snapshot store service layer.

Business rules for accepting uploads (size ceilings, unpacking, metadata
defaults, expiration, identifier allocation) and for serving stored
snapshots (expiry enforcement with deletion on read).
"""

import logging
import secrets
import string
from datetime import datetime, timezone
from typing import Callable, Optional

from page_snapshot.api.schemas import UploadRequest, UploadResponse
from page_snapshot.models.snapshot import DEFAULT_TITLE, SnapshotMetadata, StoredSnapshot
from page_snapshot.persistence.config import StoreConfig
from page_snapshot.persistence.expiration import format_expiration, parse_expiration
from page_snapshot.persistence.storage import SnapshotStore
from page_snapshot.transport.codec import CodecError, ContentTooLargeError, unpack

logger = logging.getLogger(__name__)

ID_ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits


class SnapshotNotFoundError(Exception):
    """Raised when a requested snapshot does not exist."""
    pass


class SnapshotExpiredError(Exception):
    """Raised when a requested snapshot has passed its expiry time."""
    pass


class PayloadTooLargeError(Exception):
    """Raised when an upload exceeds a size ceiling."""
    pass


class InvalidPayloadError(Exception):
    """Raised when an upload body is unusable."""
    pass


class IdentifierExhaustedError(Exception):
    """Raised when no free identifier could be allocated."""
    pass


def generate_id(length: int = 8) -> str:
    """Random identifier drawn from ``[a-zA-Z0-9]``."""
    return ''.join(secrets.choice(ID_ALPHABET) for _ in range(length))


class SnapshotService:
    """Accepts, stores and serves snapshots."""

    def __init__(
        self,
        store: SnapshotStore,
        config: Optional[StoreConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[int], str]] = None
    ):
        """Initialize snapshot service.

        Args:
            store: Storage backend
            config: Store configuration (size ceilings, identifier length)
            clock: Returns the current timezone-aware time
            id_factory: Generates candidate identifiers of a given length
        """
        self.store = store
        self.config = config or StoreConfig()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.id_factory = id_factory or generate_id

    async def create_snapshot(self, request: UploadRequest, base_url: str) -> UploadResponse:
        """Validate, unpack and store an uploaded snapshot.

        Args:
            request: Parsed upload request
            base_url: Origin used to build the snapshot URL

        Returns:
            Reference to the stored snapshot

        Raises:
            InvalidPayloadError: If html is missing or cannot be unpacked
            PayloadTooLargeError: If the payload or unpacked document is too large
        """
        if not request.html:
            raise InvalidPayloadError("Missing html content")

        if len(request.html.encode('utf-8')) > self.config.max_upload_bytes:
            raise PayloadTooLargeError("Content too large")

        content = request.html
        if request.compressed:
            try:
                content = unpack(request.html, max_size=self.config.max_document_bytes)
            except ContentTooLargeError:
                raise PayloadTooLargeError("Content too large")
            except CodecError as e:
                raise InvalidPayloadError(f"Invalid compressed content: {e}")
            if not content:
                raise InvalidPayloadError("Missing html content")

        now = self.clock()
        metadata = SnapshotMetadata(
            title=request.title or DEFAULT_TITLE,
            source_url=request.source_url or "",
            created_at=now,
            expires_at=parse_expiration(request.expires_in, now),
        )

        snapshot_id = await self._allocate_id()
        await self.store.put(snapshot_id, content, metadata)

        logger.info(
            f"Stored snapshot {snapshot_id} ({len(content)} chars, "
            f"expires: {format_expiration(metadata.expires_at) or 'never'})"
        )

        return UploadResponse(
            id=snapshot_id,
            url=f"{base_url.rstrip('/')}/{snapshot_id}",
            expires_at=format_expiration(metadata.expires_at),
        )

    async def get_snapshot(self, snapshot_id: str) -> StoredSnapshot:
        """Get a snapshot that has not expired.

        An expired snapshot is deleted before the error is raised.

        Raises:
            SnapshotNotFoundError: If the snapshot does not exist
            SnapshotExpiredError: If the snapshot has expired
        """
        snapshot = await self.store.get(snapshot_id)
        if snapshot is None:
            raise SnapshotNotFoundError(f"Snapshot {snapshot_id} not found")

        if snapshot.metadata.is_expired(self.clock()):
            await self.store.delete(snapshot_id)
            logger.info(f"Deleted expired snapshot {snapshot_id}")
            raise SnapshotExpiredError(f"Snapshot {snapshot_id} has expired")

        return snapshot

    def cache_max_age(self, snapshot: StoredSnapshot) -> int:
        """Cache lifetime for a served snapshot, never outliving its expiry."""
        remaining = snapshot.metadata.remaining_seconds(self.clock())
        if remaining is None:
            return self.config.cache_max_age_seconds
        return min(self.config.cache_max_age_seconds, remaining)

    async def _allocate_id(self) -> str:
        for _ in range(self.config.max_id_attempts):
            candidate = self.id_factory(self.config.id_length)
            if not await self.store.exists(candidate):
                return candidate
            logger.warning(f"Snapshot identifier collision: {candidate}")
        raise IdentifierExhaustedError(
            f"No free identifier after {self.config.max_id_attempts} attempts"
        )
