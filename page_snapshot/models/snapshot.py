"""Pydantic models for stored snapshots."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


DEFAULT_CONTENT_TYPE = "text/html; charset=utf-8"
DEFAULT_TITLE = "Untitled"


class SnapshotMetadata(BaseModel):
    """Metadata stored alongside a snapshot document."""

    title: str = Field(default=DEFAULT_TITLE, description="Title of the captured page")
    source_url: str = Field(default="", description="URL the page was captured from")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the snapshot was stored"
    )
    expires_at: Optional[datetime] = Field(
        default=None,
        description="When the snapshot expires, or None if it never does"
    )
    content_type: str = Field(default=DEFAULT_CONTENT_TYPE)
    size_bytes: int = Field(default=0, ge=0)

    def is_expired(self, now: datetime) -> bool:
        """Check expiry against a timezone-aware clock reading."""
        return self.expires_at is not None and self.expires_at < now

    def remaining_seconds(self, now: datetime) -> Optional[int]:
        if self.expires_at is None:
            return None
        return max(0, int((self.expires_at - now).total_seconds()))


class StoredSnapshot(BaseModel):
    """A snapshot document together with its metadata."""

    id: str
    content: str
    metadata: SnapshotMetadata
