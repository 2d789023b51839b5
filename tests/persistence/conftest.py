"""Test configuration and fixtures for persistence layer tests."""

from datetime import datetime, timedelta, timezone

import pytest

from page_snapshot.models.snapshot import SnapshotMetadata
from page_snapshot.persistence.storage import InMemorySnapshotStore, LocalSnapshotStore


@pytest.fixture
def local_store(tmp_path):
    """Local filesystem snapshot store in a temporary directory."""
    return LocalSnapshotStore(tmp_path / "snapshots")


@pytest.fixture
def memory_store():
    return InMemorySnapshotStore()


@pytest.fixture(params=["memory", "local"])
def snapshot_store(request, tmp_path):
    """Every storage backend, for behavior they must share."""
    if request.param == "memory":
        return InMemorySnapshotStore()
    return LocalSnapshotStore(tmp_path / "shared")


@pytest.fixture
def sample_metadata():
    created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return SnapshotMetadata(
        title="Example Page",
        source_url="https://example.com/",
        created_at=created_at,
        expires_at=created_at + timedelta(hours=1),
    )
