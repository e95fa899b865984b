"""Listing event normalization.

Converts the raw listing-created payload into a ListingSnapshot:
1. Validates the payload shape (ListingCreatedEvent)
2. Checks the fields matching depends on (species, size, age)
3. Collapses age value + unit into years
4. Freezes the result so later edits to the listing cannot leak into a cycle
"""

import math
from typing import Any, Mapping, Union

from pydantic import ValidationError

from pet_alerts.domain.models import AgeUnit, ListingCreatedEvent, ListingSnapshot
from pet_alerts.logging import get_logger

from .exceptions import MalformedListingSnapshot

logger = get_logger(__name__, component="normalization")

AGE_UNIT_IN_YEARS = {
    AgeUnit.DAYS: 1 / 365,
    AgeUnit.WEEKS: 7 / 365,
    AgeUnit.MONTHS: 1 / 12,
    AgeUnit.YEARS: 1.0,
}

UNNAMED_PET = "Unnamed pet"


def normalize_age(value: float, unit: Union[AgeUnit, str] = AgeUnit.YEARS) -> float:
    """Express an age in years.

    Args:
        value: Age as entered by the shelter
        unit: days, weeks, months or years

    Returns:
        Age in years, rounded to 6 decimal places

    Raises:
        ValueError: If value is negative, not finite, or unit is unknown

    Example:
        >>> normalize_age(6, "months")
        0.5
    """
    if not math.isfinite(value):
        raise ValueError(f"Age must be a finite number: {value}")
    if value < 0:
        raise ValueError(f"Age cannot be negative: {value}")

    factor = AGE_UNIT_IN_YEARS[AgeUnit(unit)]
    return round(value * factor, 6)


def format_age_label(value: float, unit: Union[AgeUnit, str] = AgeUnit.YEARS) -> str:
    """Human-readable age, e.g. ``2 years`` or ``1 month``."""
    unit_name = AgeUnit(unit).value
    if float(value).is_integer():
        value = int(value)
    if value == 1:
        unit_name = unit_name[:-1]
    return f"{value} {unit_name}"


def build_listing_snapshot(
    event: Union[ListingCreatedEvent, Mapping[str, Any]],
) -> ListingSnapshot:
    """Validate a listing-created event and freeze it for matching.

    Args:
        event: ListingCreatedEvent or the raw mapping raised by the pet-creation handler

    Returns:
        ListingSnapshot with normalized tags and age in years

    Raises:
        MalformedListingSnapshot: If listing id, species, size or age is missing or invalid
    """
    if not isinstance(event, ListingCreatedEvent):
        event = _parse_event(event)

    missing = []
    if not (event.species or "").strip():
        missing.append("species")
    if not (event.size or "").strip():
        missing.append("size")
    if event.age is None:
        missing.append("age")

    if missing:
        raise MalformedListingSnapshot(
            f"Listing {event.listing_id} is missing required fields: {', '.join(missing)}",
            listing_id=event.listing_id,
            fields=missing,
        )

    try:
        normalized_age = normalize_age(event.age.value, event.age.unit)
    except ValueError as e:
        raise MalformedListingSnapshot(
            f"Listing {event.listing_id} has an invalid age: {e}",
            listing_id=event.listing_id,
            fields=["age"],
        ) from e

    breed_label = (event.breed or "").strip() or None
    try:
        snapshot = ListingSnapshot(
            listing_id=event.listing_id,
            pet_name=(event.name or "").strip() or UNNAMED_PET,
            species=event.species,
            breed=breed_label,
            size=event.size,
            normalized_age=normalized_age,
            age_label=format_age_label(event.age.value, event.age.unit),
            breed_label=breed_label,
        )
    except ValidationError as e:
        fields = sorted({str(error["loc"][0]) for error in e.errors() if error["loc"]})
        raise MalformedListingSnapshot(
            f"Listing {event.listing_id} failed validation: {', '.join(fields) or 'snapshot'}",
            listing_id=event.listing_id,
            fields=fields,
        ) from e

    logger.debug(
        f"Listing snapshot captured: {snapshot.listing_id}",
        extra={
            "event": "listing.snapshot.captured",
            "listing_id": snapshot.listing_id,
            "species": snapshot.species,
            "size": snapshot.size,
            "normalized_age": snapshot.normalized_age,
        },
    )

    return snapshot


def _parse_event(payload: Mapping[str, Any]) -> ListingCreatedEvent:
    if not isinstance(payload, Mapping):
        raise MalformedListingSnapshot(
            f"Listing event must be a mapping, got {type(payload).__name__}"
        )

    try:
        return ListingCreatedEvent.model_validate(dict(payload))
    except ValidationError as e:
        fields = sorted({str(error["loc"][0]) for error in e.errors() if error["loc"]})
        listing_id = payload.get("listing_id") or payload.get("listingId") or payload.get("_id")
        raise MalformedListingSnapshot(
            f"Listing event failed validation: {', '.join(fields) or 'payload'}",
            listing_id=str(listing_id) if listing_id is not None else None,
            fields=fields,
        ) from e
