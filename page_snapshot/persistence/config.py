"""Configuration for the snapshot store."""

import os
from dataclasses import dataclass
from typing import Optional


MAX_UPLOAD_BYTES = 10 * 1024 * 1024
MAX_DOCUMENT_BYTES = 50 * 1024 * 1024

ENV_PREFIX = "PAGE_SNAPSHOT_"


@dataclass
class StoreConfig:
    """Snapshot store settings."""

    # Storage backend ("memory" or "local")
    backend: str = "local"
    storage_path: str = "./snapshots"

    # Size ceilings
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    max_document_bytes: int = MAX_DOCUMENT_BYTES

    # Public URL prefix for snapshot links; request origin when unset
    public_base_url: Optional[str] = None

    # Identifier generation
    id_length: int = 8
    max_id_attempts: int = 5

    # Upper bound for Cache-Control max-age on served snapshots
    cache_max_age_seconds: int = 3600

    @classmethod
    def from_environment(cls) -> "StoreConfig":
        """Create configuration from environment variables."""
        config = cls()

        config.backend = os.getenv(f"{ENV_PREFIX}STORE_BACKEND", config.backend).lower()
        config.storage_path = os.getenv(f"{ENV_PREFIX}STORAGE_PATH", config.storage_path)
        config.max_upload_bytes = int(os.getenv(f"{ENV_PREFIX}MAX_UPLOAD_BYTES", str(config.max_upload_bytes)))
        config.max_document_bytes = int(os.getenv(f"{ENV_PREFIX}MAX_DOCUMENT_BYTES", str(config.max_document_bytes)))
        config.public_base_url = os.getenv(f"{ENV_PREFIX}PUBLIC_BASE_URL") or None
        config.cache_max_age_seconds = int(os.getenv(f"{ENV_PREFIX}CACHE_MAX_AGE", str(config.cache_max_age_seconds)))

        return config

    def validate(self) -> None:
        """Validate configuration settings."""
        if self.backend not in ("memory", "local"):
            raise ValueError(f"Unsupported storage backend: {self.backend}")

        if self.max_upload_bytes <= 0:
            raise ValueError("Maximum upload size must be positive")

        if self.max_document_bytes <= 0:
            raise ValueError("Maximum document size must be positive")

        if self.id_length < 4:
            raise ValueError("Identifier length must be at least 4")

        if self.max_id_attempts <= 0:
            raise ValueError("Identifier attempts must be positive")
