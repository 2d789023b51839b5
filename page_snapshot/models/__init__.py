"""Data models for page snapshot."""

from .capture import CaptureResult, CaptureState
from .snapshot import DEFAULT_CONTENT_TYPE, DEFAULT_TITLE, SnapshotMetadata, StoredSnapshot

__all__ = [
    'CaptureResult',
    'CaptureState',
    'DEFAULT_CONTENT_TYPE',
    'DEFAULT_TITLE',
    'SnapshotMetadata',
    'StoredSnapshot',
]
