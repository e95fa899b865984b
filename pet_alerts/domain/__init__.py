"""Domain models for the pet alert notifier."""

from .models import (
    AgeRange,
    AgeUnit,
    CoarseFilter,
    ListingCreatedEvent,
    ListingSnapshot,
    PetAge,
    PreferenceRecord,
    Recipient,
)

__all__ = [
    "AgeRange",
    "AgeUnit",
    "CoarseFilter",
    "ListingCreatedEvent",
    "ListingSnapshot",
    "PetAge",
    "PreferenceRecord",
    "Recipient",
]
