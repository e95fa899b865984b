"""Exceptions raised while turning listing events into snapshots."""

from typing import List, Optional


class MalformedListingSnapshot(ValueError):
    """A listing-created event is missing or has invalid required fields.

    Fatal for the one event only; the orchestrator logs it and moves on.
    """

    def __init__(self, message: str, listing_id: Optional[str] = None, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.listing_id = listing_id
        self.fields = fields or []
