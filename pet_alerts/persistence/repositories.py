"""Data access layer (repositories) for preferences and the alert ledger.

Repositories wrap a caller-owned Session and return domain models rather
than ORM models. They flush but never commit; get_session() commits.
"""

import logging
from datetime import datetime
from typing import Any, List, Mapping, Optional

from pydantic import ValidationError
from sqlalchemy import and_, exists, not_, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from pet_alerts.config.models import EmptyFacetPolicy
from pet_alerts.domain.models import CoarseFilter, PreferenceRecord
from pet_alerts.utils.timestamps import format_timestamp, utc_now

from .exceptions import (
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
    StoreUnavailable,
)
from .schema import (
    FACET_SIZE,
    FACET_SPECIES,
    ListingAlertModel,
    PreferenceFacetModel,
    PreferenceModel,
)

logger = logging.getLogger(__name__)

# Profile API spellings accepted by update_preferences()
_FIELD_ALIASES = {
    "userId": "user_id",
    "wantsAlerts": "wants_alerts",
    "receivePetAlerts": "wants_alerts",
    "ageRange": "age_range",
}


def _facet_clause(facet: str, value: str, empty_facet: EmptyFacetPolicy):
    """SQL for one set facet: a row equal to value, or (wildcard) no rows at all."""
    owned_by_user = PreferenceFacetModel.user_id == PreferenceModel.user_id
    has_value = exists().where(
        owned_by_user,
        PreferenceFacetModel.facet == facet,
        PreferenceFacetModel.value == value,
    )
    if empty_facet == EmptyFacetPolicy.NONE:
        return has_value

    has_any = exists().where(owned_by_user, PreferenceFacetModel.facet == facet)
    return or_(not_(has_any), has_value)


class PreferenceRepository:
    """Repository for standing adoption preferences."""

    def __init__(self, session: Session):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def get_by_user(self, user_id: str) -> Optional[PreferenceRecord]:
        """Retrieve a user's preferences, or None if the user never saved any.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            model = self.session.get(PreferenceModel, user_id)
            return model.to_domain() if model is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving preferences for {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve preferences: {e}") from e

    def upsert(self, record: PreferenceRecord) -> PreferenceRecord:
        """Insert or replace a user's preferences.

        Args:
            record: Complete preference record

        Returns:
            The stored record

        Raises:
            DataIntegrityError: On constraint violation
            PersistenceError: If database error occurs
        """
        try:
            existing = self.session.get(PreferenceModel, record.user_id)

            if existing is not None:
                existing.apply(record, utc_now())
                model = existing
            else:
                model = PreferenceModel.from_domain(record)
                self.session.add(model)

            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error upserting preferences {record.user_id}: {e}", exc_info=True)
            raise DataIntegrityError(
                f"Failed to upsert preferences due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting preferences {record.user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert preferences: {e}") from e

    def update_preferences(self, user_id: str, changes: Mapping[str, Any]) -> PreferenceRecord:
        """Shallow-merge changes into the stored preferences.

        Keys present in changes replace the stored value wholesale (a new
        species list replaces the old one); absent keys are kept.

        Args:
            user_id: Owner of the preferences
            changes: Partial preferences, snake_case or profile API camelCase

        Returns:
            The merged and stored record

        Raises:
            RecordNotFoundError: If the user has no stored preferences
            ValueError: If the merged record is invalid or tries to change user_id
            PersistenceError: If database error occurs
        """
        existing = self.get_by_user(user_id)
        if existing is None:
            raise RecordNotFoundError(f"Preferences for user {user_id} not found")

        normalized = {_FIELD_ALIASES.get(key, key): value for key, value in changes.items()}
        if normalized.get("user_id", user_id) != user_id:
            raise ValueError("user_id cannot be changed")

        try:
            merged = PreferenceRecord.model_validate({**existing.model_dump(), **normalized})
        except ValidationError as e:
            raise ValueError(f"Invalid preferences for user {user_id}: {e}") from e

        return self.upsert(merged)

    def delete(self, user_id: str) -> bool:
        """Remove a user's preferences. Returns False if none were stored."""
        try:
            model = self.session.get(PreferenceModel, user_id)
            if model is None:
                return False
            self.session.delete(model)
            self.session.flush()
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error deleting preferences for {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete preferences: {e}") from e

    def query_candidate_preferences(self, coarse_filter: CoarseFilter) -> List[PreferenceRecord]:
        """Fetch records that may match a listing according to the coarse filter.

        The filter is: wants_alerts AND species facet AND size facet. The
        result is a superset of the true candidates; breed and age are not
        checked here.

        Args:
            coarse_filter: Listing species/size and the empty-facet policy

        Returns:
            Preference records ordered by user_id

        Raises:
            StoreUnavailable: If the query fails
        """
        try:
            stmt = (
                select(PreferenceModel)
                .where(
                    and_(
                        PreferenceModel.wants_alerts.is_(True),
                        _facet_clause(FACET_SPECIES, coarse_filter.species, coarse_filter.empty_facet),
                        _facet_clause(FACET_SIZE, coarse_filter.size, coarse_filter.empty_facet),
                    )
                )
                .order_by(PreferenceModel.user_id)
            )
            models = self.session.execute(stmt).scalars().all()
            return [model.to_domain() for model in models]

        except SQLAlchemyError as e:
            logger.error(f"Error querying candidate preferences: {e}", exc_info=True)
            raise StoreUnavailable(f"Failed to query candidate preferences: {e}") from e


class ListingAlertRepository:
    """Repository for the ledger of notifications already sent per listing."""

    def __init__(self, session: Session):
        self.session = session

    def has_been_sent(self, listing_id: str, user_id: str) -> bool:
        """Check whether user_id was already notified about listing_id.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            return self.session.get(ListingAlertModel, (listing_id, user_id)) is not None
        except SQLAlchemyError as e:
            logger.error(f"Error checking alert ledger for {listing_id}/{user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to check alert ledger: {e}") from e

    def record_alert(self, listing_id: str, user_id: str, sent_at: datetime) -> None:
        """Record a successful notification. Recording twice is a no-op.

        Raises:
            DataIntegrityError: On constraint violation
            PersistenceError: If database error occurs
        """
        try:
            if self.session.get(ListingAlertModel, (listing_id, user_id)) is not None:
                return

            self.session.add(
                ListingAlertModel(
                    listing_id=listing_id,
                    user_id=user_id,
                    sent_at=format_timestamp(sent_at),
                )
            )
            self.session.flush()

        except IntegrityError as e:
            logger.error(f"Integrity error recording alert {listing_id}/{user_id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to record alert: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error recording alert {listing_id}/{user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to record alert: {e}") from e

    def get_recipients(self, listing_id: str) -> List[str]:
        """User ids already notified about a listing, sorted."""
        try:
            stmt = (
                select(ListingAlertModel.user_id)
                .where(ListingAlertModel.listing_id == listing_id)
                .order_by(ListingAlertModel.user_id)
            )
            return list(self.session.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error reading alert ledger for {listing_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to read alert ledger: {e}") from e
