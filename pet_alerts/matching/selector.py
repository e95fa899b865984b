"""Candidate selection: coarse storage filter, then the full predicate.

The store narrows by wants_alerts, species and size. Every record it
returns is re-checked with the full predicate before it becomes a
candidate; the predicate is the source of truth.
"""

from typing import Callable, ContextManager, Iterable, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pet_alerts.domain.models import CoarseFilter, ListingSnapshot, PreferenceRecord
from pet_alerts.logging import get_logger
from pet_alerts.persistence.database import get_session
from pet_alerts.persistence.exceptions import PersistenceError, StoreUnavailable
from pet_alerts.persistence.repositories import PreferenceRepository

from .engine import PreferenceMatcher

logger = get_logger(__name__, component="selector")

SessionProvider = Callable[[], ContextManager[Session]]


class CandidateSelector:
    """Finds the preference records that match a listing."""

    def __init__(
        self,
        matcher: Optional[PreferenceMatcher] = None,
        session_provider: SessionProvider = get_session,
    ):
        """
        Args:
            matcher: Predicate wrapper; its empty-facet policy also shapes the coarse filter
            session_provider: Context manager factory yielding a Session
        """
        self.matcher = matcher or PreferenceMatcher()
        self.session_provider = session_provider

    def select_candidates(self, listing: ListingSnapshot) -> Iterator[PreferenceRecord]:
        """Return the records that match listing.

        The store is queried eagerly, so StoreUnavailable is raised here and
        never halfway through iteration. Narrowing with the predicate is lazy.

        Args:
            listing: Snapshot of the new listing

        Returns:
            Iterator over matching PreferenceRecords

        Raises:
            StoreUnavailable: If the preference store cannot be queried
        """
        coarse_filter = CoarseFilter.for_listing(listing, self.matcher.empty_facet)
        records = self._query(coarse_filter)

        logger.debug(
            f"Coarse filter returned {len(records)} records",
            extra={
                "event": "selector.coarse.completed",
                "listing_id": listing.listing_id,
                "coarse_count": len(records),
            },
        )

        return self._narrow(listing, records)

    def _query(self, coarse_filter: CoarseFilter) -> List[PreferenceRecord]:
        try:
            with self.session_provider() as session:
                return PreferenceRepository(session).query_candidate_preferences(coarse_filter)
        except StoreUnavailable:
            raise
        except (PersistenceError, SQLAlchemyError) as e:
            raise StoreUnavailable(f"Preference store unavailable: {e}") from e

    def _narrow(
        self, listing: ListingSnapshot, records: Iterable[PreferenceRecord]
    ) -> Iterator[PreferenceRecord]:
        for record in records:
            result = self.matcher.evaluate(listing, record)
            if result.is_match:
                yield record
            else:
                # Coarse filter let through a record the predicate rejects
                logger.debug(
                    f"Dropped coarse candidate {record.user_id}: {result.reason}",
                    extra={
                        "event": "selector.candidate.dropped",
                        "user_id": record.user_id,
                        "listing_id": listing.listing_id,
                    },
                )
