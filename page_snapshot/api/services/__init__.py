"""API service layer for the snapshot store."""

from .snapshot_service import (
    ID_ALPHABET,
    IdentifierExhaustedError,
    InvalidPayloadError,
    PayloadTooLargeError,
    SnapshotExpiredError,
    SnapshotNotFoundError,
    SnapshotService,
    generate_id,
)

__all__ = [
    "ID_ALPHABET",
    "SnapshotService",
    "SnapshotNotFoundError",
    "SnapshotExpiredError",
    "PayloadTooLargeError",
    "InvalidPayloadError",
    "IdentifierExhaustedError",
    "generate_id",
]
