"""Command line interface for Page Snapshot."""
