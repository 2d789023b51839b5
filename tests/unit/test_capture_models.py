"""Unit tests for capture and snapshot data models."""

import pytest
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError

from page_snapshot.models.capture import CaptureResult, CaptureState
from page_snapshot.models.snapshot import DEFAULT_CONTENT_TYPE, DEFAULT_TITLE, SnapshotMetadata


class TestCaptureResult:
    """Tests for CaptureResult model."""

    def test_succeeded(self):
        """Test successful result creation."""
        result = CaptureResult.succeeded("<html></html>", "Title", "https://example.com/")

        assert result.success is True
        assert result.html == "<html></html>"
        assert result.title == "Title"
        assert result.source_url == "https://example.com/"
        assert result.error is None

    def test_failed(self):
        """Test failed result creation."""
        result = CaptureResult.failed("Network unreachable", "https://example.com/")

        assert result.success is False
        assert result.html is None
        assert result.error == "Network unreachable"

    def test_failed_with_blank_error_gets_message(self):
        result = CaptureResult.failed("   ")

        assert result.error == "Unknown capture error"

    def test_success_requires_html(self):
        with pytest.raises(ValidationError):
            CaptureResult(success=True)

    def test_success_cannot_carry_error(self):
        with pytest.raises(ValidationError):
            CaptureResult(success=True, html="<p></p>", error="boom")

    def test_failure_requires_error(self):
        with pytest.raises(ValidationError):
            CaptureResult(success=False, error="  ")

    def test_failure_cannot_carry_html(self):
        with pytest.raises(ValidationError):
            CaptureResult(success=False, html="<p></p>", error="boom")

    def test_alias_serialization(self):
        result = CaptureResult.succeeded("<p></p>", None, "https://example.com/")

        data = result.model_dump(by_alias=True)

        assert data["sourceUrl"] == "https://example.com/"
        assert CaptureResult.model_validate(data) == result

    def test_result_is_immutable(self):
        result = CaptureResult.failed("boom")

        with pytest.raises(ValidationError):
            result.error = "other"


class TestCaptureState:
    """Tests for CaptureState ordering values."""

    def test_values(self):
        assert [state.value for state in CaptureState] == [
            "idle", "styles_resolving", "resources_inlining", "assembling", "done"
        ]


class TestSnapshotMetadata:
    """Tests for SnapshotMetadata model."""

    def test_defaults(self):
        metadata = SnapshotMetadata()

        assert metadata.title == DEFAULT_TITLE
        assert metadata.source_url == ""
        assert metadata.content_type == DEFAULT_CONTENT_TYPE
        assert metadata.expires_at is None
        assert metadata.created_at.tzinfo is not None

    def test_never_expires(self):
        metadata = SnapshotMetadata()
        far_future = datetime(2999, 1, 1, tzinfo=timezone.utc)

        assert metadata.is_expired(far_future) is False
        assert metadata.remaining_seconds(far_future) is None

    def test_expiry_is_strict(self):
        expires_at = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        metadata = SnapshotMetadata(expires_at=expires_at)

        assert metadata.is_expired(expires_at) is False
        assert metadata.is_expired(expires_at + timedelta(milliseconds=1)) is True

    def test_remaining_seconds(self):
        expires_at = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        metadata = SnapshotMetadata(expires_at=expires_at)

        assert metadata.remaining_seconds(expires_at - timedelta(minutes=5)) == 300
        assert metadata.remaining_seconds(expires_at + timedelta(minutes=5)) == 0
