"""Snapshot store REST API."""
