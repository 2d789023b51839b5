"""Page Snapshot: capture web pages as self-contained HTML documents."""

__version__ = "1.0.0"
