"""Normalization of listing-created events into matchable snapshots.

This module provides:
- build_listing_snapshot: validate an event and freeze it as a ListingSnapshot
- normalize_age: collapse an age value + unit onto a single scale (years)
- MalformedListingSnapshot: raised for events missing required fields
"""

from .exceptions import MalformedListingSnapshot
from .service import AGE_UNIT_IN_YEARS, build_listing_snapshot, format_age_label, normalize_age

__all__ = [
    "AGE_UNIT_IN_YEARS",
    "MalformedListingSnapshot",
    "build_listing_snapshot",
    "format_age_label",
    "normalize_age",
]
