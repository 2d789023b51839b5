"""Utility helpers for page snapshot."""

from .urls import (
    URLResolutionError,
    is_data_url,
    is_fragment_only,
    is_privileged_page,
    resolve,
)

__all__ = [
    'URLResolutionError',
    'is_data_url',
    'is_fragment_only',
    'is_privileged_page',
    'resolve',
]
