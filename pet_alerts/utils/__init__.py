"""Utility functions for tag normalization and UTC timestamps."""

from .tags import normalize_tag, normalize_tag_set
from .timestamps import ensure_utc, format_timestamp, utc_now

__all__ = [
    # Tags
    "normalize_tag",
    "normalize_tag_set",
    # Timestamps
    "utc_now",
    "ensure_utc",
    "format_timestamp",
]
