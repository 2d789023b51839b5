"""Tests for snapshot storage backends."""

import json

import pytest

from page_snapshot.persistence.config import StoreConfig
from page_snapshot.persistence.storage import (
    InMemorySnapshotStore,
    LocalSnapshotStore,
    create_snapshot_store,
    validate_snapshot_id,
)


DOCUMENT = "<!DOCTYPE html>\n<html><body>Ünïcödé snapshot ✓</body></html>"


class TestSnapshotStoreContract:
    """Behavior shared by every backend."""

    async def test_put_and_get(self, snapshot_store, sample_metadata):
        stored = await snapshot_store.put("abcd1234", DOCUMENT, sample_metadata)

        assert stored.metadata.size_bytes == len(DOCUMENT.encode('utf-8'))

        snapshot = await snapshot_store.get("abcd1234")
        assert snapshot.content == DOCUMENT
        assert snapshot.metadata.title == "Example Page"
        assert snapshot.metadata.expires_at == sample_metadata.expires_at

    async def test_missing(self, snapshot_store):
        assert await snapshot_store.get("missing1") is None
        assert await snapshot_store.exists("missing1") is False
        assert await snapshot_store.delete("missing1") is False

    async def test_delete(self, snapshot_store, sample_metadata):
        await snapshot_store.put("abcd1234", DOCUMENT, sample_metadata)

        assert await snapshot_store.exists("abcd1234") is True
        assert await snapshot_store.delete("abcd1234") is True
        assert await snapshot_store.exists("abcd1234") is False
        assert await snapshot_store.get("abcd1234") is None

    async def test_put_replaces(self, snapshot_store, sample_metadata):
        await snapshot_store.put("abcd1234", "first", sample_metadata)
        await snapshot_store.put("abcd1234", "second", sample_metadata)

        assert (await snapshot_store.get("abcd1234")).content == "second"

    async def test_invalid_identifier_is_rejected(self, snapshot_store, sample_metadata):
        with pytest.raises(ValueError):
            await snapshot_store.put("../escape", DOCUMENT, sample_metadata)


class TestLocalSnapshotStore:
    """Tests for the filesystem backend."""

    async def test_files_on_disk(self, local_store, sample_metadata):
        await local_store.put("abcd1234", DOCUMENT, sample_metadata)

        html_path = local_store.base_path / "abcd1234.html"
        meta_path = local_store.base_path / "abcd1234.html.meta"
        assert html_path.read_text(encoding='utf-8') == DOCUMENT
        metadata = json.loads(meta_path.read_text())
        assert metadata["source_url"] == "https://example.com/"
        assert metadata["expires_at"].startswith("2024-01-01T01:00:00")

    async def test_survives_new_instance(self, local_store, sample_metadata):
        await local_store.put("abcd1234", DOCUMENT, sample_metadata)

        reopened = LocalSnapshotStore(local_store.base_path)

        assert (await reopened.get("abcd1234")).content == DOCUMENT

    async def test_unreadable_metadata_falls_back_to_defaults(self, local_store, sample_metadata):
        await local_store.put("abcd1234", DOCUMENT, sample_metadata)
        (local_store.base_path / "abcd1234.html.meta").write_text("{broken")

        snapshot = await local_store.get("abcd1234")

        assert snapshot.content == DOCUMENT
        assert snapshot.metadata.title == "Untitled"
        assert snapshot.metadata.expires_at is None

    async def test_path_traversal_lookups(self, local_store):
        assert await local_store.get("../../etc/passwd") is None
        assert await local_store.exists("a/b") is False
        assert await local_store.delete("..") is False


class TestHelpers:
    """Tests for identifier validation, factory and configuration."""

    @pytest.mark.parametrize("snapshot_id", ["abcd1234", "ABCDEFGH", "00000000"])
    def test_valid_identifiers(self, snapshot_id):
        assert validate_snapshot_id(snapshot_id) == snapshot_id

    @pytest.mark.parametrize("snapshot_id", ["", "abc-1234", "abc.html", "ünïcödé1"])
    def test_invalid_identifiers(self, snapshot_id):
        with pytest.raises(ValueError):
            validate_snapshot_id(snapshot_id)

    def test_factory(self, tmp_path):
        assert isinstance(create_snapshot_store("memory"), InMemorySnapshotStore)
        assert isinstance(create_snapshot_store("local", base_path=tmp_path), LocalSnapshotStore)

        with pytest.raises(ValueError):
            create_snapshot_store("s3")

    def test_config_from_environment(self, monkeypatch):
        monkeypatch.setenv("PAGE_SNAPSHOT_STORE_BACKEND", "MEMORY")
        monkeypatch.setenv("PAGE_SNAPSHOT_MAX_UPLOAD_BYTES", "1024")
        monkeypatch.setenv("PAGE_SNAPSHOT_PUBLIC_BASE_URL", "https://snap.example.com")

        config = StoreConfig.from_environment()

        assert config.backend == "memory"
        assert config.max_upload_bytes == 1024
        assert config.public_base_url == "https://snap.example.com"
        config.validate()

    def test_config_validation(self):
        with pytest.raises(ValueError):
            StoreConfig(backend="s3").validate()
        with pytest.raises(ValueError):
            StoreConfig(max_upload_bytes=0).validate()
