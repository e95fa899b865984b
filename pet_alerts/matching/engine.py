"""Preference match predicate.

A listing matches a preference record when every facet is satisfied:
1. Species: listing species is in the accepted set
2. Breed: listing breed is in the accepted set (a listing without a breed passes)
3. Age: listing age in years lies inside the inclusive range
4. Size: listing size is in the accepted set

An empty facet set is a wildcard under EmptyFacetPolicy.ANY and rejects
everything under EmptyFacetPolicy.NONE. There is no scoring; the result is
a hard boolean.
"""

import logging
from typing import FrozenSet, List, Optional

from pet_alerts.config.models import EmptyFacetPolicy
from pet_alerts.domain.models import ListingSnapshot, PreferenceRecord

from .models import Facet, MatchResult

logger = logging.getLogger(__name__)


def _set_facet_satisfied(
    accepted: FrozenSet[str], value: str, empty_facet: EmptyFacetPolicy
) -> bool:
    if not accepted:
        return empty_facet == EmptyFacetPolicy.ANY
    return value in accepted


def failed_facets(
    listing: ListingSnapshot,
    pref: PreferenceRecord,
    empty_facet: EmptyFacetPolicy = EmptyFacetPolicy.ANY,
) -> List[Facet]:
    """Return the facets of pref that reject listing, in evaluation order."""
    failed = []

    if not _set_facet_satisfied(pref.species, listing.species, empty_facet):
        failed.append(Facet.SPECIES)

    # Listings without a breed are not filtered on breed
    if listing.breed is not None and not _set_facet_satisfied(
        pref.breeds, listing.breed, empty_facet
    ):
        failed.append(Facet.BREED)

    if pref.age_range is not None and not pref.age_range.contains(listing.normalized_age):
        failed.append(Facet.AGE)

    if not _set_facet_satisfied(pref.size, listing.size, empty_facet):
        failed.append(Facet.SIZE)

    return failed


def matches(
    listing: ListingSnapshot,
    pref: PreferenceRecord,
    empty_facet: EmptyFacetPolicy = EmptyFacetPolicy.ANY,
) -> bool:
    """Decide whether pref wants to hear about listing. Pure; no I/O.

    Args:
        listing: Snapshot of the new listing
        pref: Standing preference record
        empty_facet: Meaning of an empty facet set

    Returns:
        True if alerts are enabled and every facet is satisfied
    """
    if not pref.wants_alerts:
        return False
    return not failed_facets(listing, pref, empty_facet)


class PreferenceMatcher:
    """Evaluates preference records against a listing and logs the decision."""

    def __init__(
        self,
        empty_facet: EmptyFacetPolicy = EmptyFacetPolicy.ANY,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize PreferenceMatcher.

        Args:
            empty_facet: Meaning of an empty species/breeds/size set
            logger_instance: Optional logger instance (defaults to module logger)
        """
        self.empty_facet = EmptyFacetPolicy(empty_facet)
        self.logger = logger_instance or logger

    def matches(self, listing: ListingSnapshot, pref: PreferenceRecord) -> bool:
        """Boolean form of evaluate(), without logging."""
        return matches(listing, pref, self.empty_facet)

    def evaluate(self, listing: ListingSnapshot, pref: PreferenceRecord) -> MatchResult:
        """Evaluate one record and return the detailed result.

        Args:
            listing: Snapshot of the new listing
            pref: Preference record to test

        Returns:
            MatchResult with the decision and the facets that failed
        """
        if not pref.wants_alerts:
            result = MatchResult(
                user_id=pref.user_id,
                listing_id=listing.listing_id,
                is_match=False,
                alerts_disabled=True,
            )
        else:
            failed = failed_facets(listing, pref, self.empty_facet)
            result = MatchResult(
                user_id=pref.user_id,
                listing_id=listing.listing_id,
                is_match=not failed,
                failed_facets=failed,
            )

        if result.is_match:
            self.logger.debug(
                f"Preference matched: user {pref.user_id}",
                extra={"user_id": pref.user_id, "listing_id": listing.listing_id},
            )
        else:
            self.logger.debug(
                f"Preference did not match: user {pref.user_id}",
                extra={
                    "user_id": pref.user_id,
                    "listing_id": listing.listing_id,
                    "reason": result.reason,
                },
            )

        return result
