"""Snapshot storage backends.

This module provides the abstract snapshot store plus an in-memory backend
(tests, ephemeral servers) and a local filesystem backend that keeps each
document next to a JSON metadata sidecar.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import ValidationError

from ..models.snapshot import SnapshotMetadata, StoredSnapshot


logger = logging.getLogger(__name__)


class SnapshotStoreError(Exception):
    """Raised when a storage backend fails."""
    pass


def validate_snapshot_id(snapshot_id: str) -> str:
    """Reject identifiers that are not plain alphanumeric strings."""
    if not snapshot_id or not snapshot_id.isascii() or not snapshot_id.isalnum():
        raise ValueError(f"Invalid snapshot identifier: {snapshot_id!r}")
    return snapshot_id


class SnapshotStore(ABC):
    """Abstract base class for snapshot storage backends."""

    @abstractmethod
    async def put(self, snapshot_id: str, content: str, metadata: SnapshotMetadata) -> StoredSnapshot:
        """Store a document under ``snapshot_id``, replacing any existing entry.

        Args:
            snapshot_id: Identifier of the snapshot
            content: Document text
            metadata: Metadata stored with the document

        Returns:
            The stored snapshot
        """
        pass

    @abstractmethod
    async def get(self, snapshot_id: str) -> Optional[StoredSnapshot]:
        """Get a stored snapshot, or None if there is none."""
        pass

    @abstractmethod
    async def delete(self, snapshot_id: str) -> bool:
        """Delete a snapshot.

        Returns:
            True if deleted, False if not found
        """
        pass

    @abstractmethod
    async def exists(self, snapshot_id: str) -> bool:
        pass


class InMemorySnapshotStore(SnapshotStore):
    """Snapshot store that keeps everything in process memory."""

    def __init__(self):
        self._snapshots: Dict[str, StoredSnapshot] = {}
        self._lock = asyncio.Lock()

    async def put(self, snapshot_id: str, content: str, metadata: SnapshotMetadata) -> StoredSnapshot:
        validate_snapshot_id(snapshot_id)
        snapshot = StoredSnapshot(
            id=snapshot_id,
            content=content,
            metadata=metadata.model_copy(update={'size_bytes': len(content.encode('utf-8'))}),
        )
        async with self._lock:
            self._snapshots[snapshot_id] = snapshot
        return snapshot

    async def get(self, snapshot_id: str) -> Optional[StoredSnapshot]:
        async with self._lock:
            return self._snapshots.get(snapshot_id)

    async def delete(self, snapshot_id: str) -> bool:
        async with self._lock:
            return self._snapshots.pop(snapshot_id, None) is not None

    async def exists(self, snapshot_id: str) -> bool:
        async with self._lock:
            return snapshot_id in self._snapshots

    def __len__(self) -> int:
        return len(self._snapshots)


class LocalSnapshotStore(SnapshotStore):
    """Local filesystem snapshot store.

    Each snapshot is written as ``<id>.html`` with its metadata in
    ``<id>.html.meta``.
    """

    def __init__(self, base_path: Union[str, Path] = "./snapshots"):
        """Initialize local storage.

        Args:
            base_path: Directory snapshots are written to
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _paths(self, snapshot_id: str):
        validate_snapshot_id(snapshot_id)
        file_path = self.base_path / f"{snapshot_id}.html"
        return file_path, file_path.with_suffix(file_path.suffix + '.meta')

    async def put(self, snapshot_id: str, content: str, metadata: SnapshotMetadata) -> StoredSnapshot:
        """Write document and metadata sidecar."""
        file_path, metadata_path = self._paths(snapshot_id)
        content_bytes = content.encode('utf-8')
        metadata = metadata.model_copy(update={'size_bytes': len(content_bytes)})

        try:
            with open(file_path, 'wb') as f:
                f.write(content_bytes)

            with open(metadata_path, 'w') as f:
                json.dump(metadata.model_dump(mode='json'), f, indent=2)
        except OSError as e:
            raise SnapshotStoreError(f"Failed to write snapshot {snapshot_id}: {e}")

        logger.debug(f"Stored snapshot {snapshot_id} ({len(content_bytes)} bytes)")
        return StoredSnapshot(id=snapshot_id, content=content, metadata=metadata)

    async def get(self, snapshot_id: str) -> Optional[StoredSnapshot]:
        """Read document and metadata sidecar."""
        try:
            file_path, metadata_path = self._paths(snapshot_id)
        except ValueError:
            return None

        if not file_path.exists():
            return None

        try:
            content = file_path.read_text(encoding='utf-8')
        except OSError as e:
            raise SnapshotStoreError(f"Failed to read snapshot {snapshot_id}: {e}")

        metadata = SnapshotMetadata()
        if metadata_path.exists():
            try:
                with open(metadata_path, 'r') as f:
                    metadata = SnapshotMetadata(**json.load(f))
            except (json.JSONDecodeError, OSError, ValidationError) as e:
                logger.warning(f"Unreadable metadata for snapshot {snapshot_id}: {e}")

        return StoredSnapshot(id=snapshot_id, content=content, metadata=metadata)

    async def delete(self, snapshot_id: str) -> bool:
        """Delete document and metadata files."""
        try:
            file_path, metadata_path = self._paths(snapshot_id)
        except ValueError:
            return False

        deleted = False
        if file_path.exists():
            file_path.unlink()
            deleted = True

        if metadata_path.exists():
            metadata_path.unlink()

        return deleted

    async def exists(self, snapshot_id: str) -> bool:
        try:
            file_path, _ = self._paths(snapshot_id)
        except ValueError:
            return False
        return file_path.exists()


def create_snapshot_store(backend: str = "local", **kwargs) -> SnapshotStore:
    """Create a snapshot store for the named backend.

    Args:
        backend: "memory" or "local"
        **kwargs: Backend options (``base_path`` for local)

    Raises:
        ValueError: For unknown backends
    """
    if backend == "memory":
        return InMemorySnapshotStore()
    elif backend == "local":
        return LocalSnapshotStore(**kwargs)
    else:
        raise ValueError(f"Unsupported storage backend: {backend}")
