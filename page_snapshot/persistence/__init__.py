"""Snapshot persistence: storage backends, expiration and configuration."""

from .config import StoreConfig
from .expiration import format_expiration, parse_expiration
from .storage import (
    InMemorySnapshotStore,
    LocalSnapshotStore,
    SnapshotStore,
    SnapshotStoreError,
    create_snapshot_store,
)

__all__ = [
    'InMemorySnapshotStore',
    'LocalSnapshotStore',
    'SnapshotStore',
    'SnapshotStoreError',
    'StoreConfig',
    'create_snapshot_store',
    'format_expiration',
    'parse_expiration',
]
