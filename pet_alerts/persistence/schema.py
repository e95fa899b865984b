"""Database schema definition and ORM models.

Preference facets (species, breeds, sizes) live in their own table, one row
per accepted value, so the candidate query can express "no rows for this
facet" (wildcard) and "a row equal to the listing value" as indexed EXISTS
clauses.
"""

import logging
from datetime import datetime
from typing import Dict, List, Set

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    ForeignKey,
    Index,
    String,
    inspect,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship

from pet_alerts.domain.models import AgeRange, PreferenceRecord
from pet_alerts.utils.timestamps import format_timestamp, utc_now

logger = logging.getLogger(__name__)

Base = declarative_base()

FACET_SPECIES = "species"
FACET_BREED = "breed"
FACET_SIZE = "size"

# PreferenceRecord attribute holding each facet's values
FACET_FIELDS = {
    FACET_SPECIES: "species",
    FACET_BREED: "breeds",
    FACET_SIZE: "size",
}


class PreferenceModel(Base):
    """ORM model for the preferences table (one row per user)."""

    __tablename__ = "preferences"

    user_id = Column(String(64), primary_key=True, nullable=False)

    # Contact details projected from the user profile
    email = Column(String(320), nullable=True)
    name = Column(String(255), nullable=True)

    wants_alerts = Column(Boolean, nullable=False, default=False)
    age_min = Column(Float, nullable=True)
    age_max = Column(Float, nullable=True)

    updated_at = Column(String(50), nullable=False)

    facets = relationship(
        "PreferenceFacetModel",
        cascade="all, delete-orphan",
        lazy="selectin",
        back_populates="preference",
    )

    __table_args__ = (Index("idx_preferences_wants_alerts", "wants_alerts"),)

    def facet_values(self) -> Dict[str, Set[str]]:
        values: Dict[str, Set[str]] = {name: set() for name in FACET_FIELDS}
        for facet in self.facets:
            values.setdefault(facet.facet, set()).add(facet.value)
        return values

    def to_domain(self) -> PreferenceRecord:
        values = self.facet_values()
        age_range = None
        if self.age_min is not None or self.age_max is not None:
            age_range = AgeRange(min=self.age_min, max=self.age_max)

        return PreferenceRecord(
            user_id=self.user_id,
            email=self.email,
            name=self.name,
            wants_alerts=self.wants_alerts,
            species=values[FACET_SPECIES],
            breeds=values[FACET_BREED],
            age_range=age_range,
            size=values[FACET_SIZE],
        )

    def apply(self, record: PreferenceRecord, updated_at: datetime) -> None:
        """Copy a domain record onto this row, reusing unchanged facet rows."""
        self.email = record.email
        self.name = record.name
        self.wants_alerts = record.wants_alerts
        self.age_min = record.age_range.min if record.age_range else None
        self.age_max = record.age_range.max if record.age_range else None
        self.updated_at = format_timestamp(updated_at)

        wanted = set(_facet_pairs(record))
        current = {(f.facet, f.value): f for f in self.facets}

        for key, facet in current.items():
            if key not in wanted:
                self.facets.remove(facet)
        for facet_name, value in sorted(wanted - set(current)):
            self.facets.append(PreferenceFacetModel(facet=facet_name, value=value))

    @classmethod
    def from_domain(cls, record: PreferenceRecord) -> "PreferenceModel":
        model = cls(user_id=record.user_id)
        model.apply(record, utc_now())
        return model


class PreferenceFacetModel(Base):
    """One accepted value of one facet for one user."""

    __tablename__ = "preference_facets"

    user_id = Column(
        String(64),
        ForeignKey("preferences.user_id", ondelete="CASCADE"),
        primary_key=True,
        nullable=False,
    )
    facet = Column(String(16), primary_key=True, nullable=False)
    value = Column(String(255), primary_key=True, nullable=False)

    preference = relationship("PreferenceModel", back_populates="facets")

    __table_args__ = (Index("idx_preference_facets_lookup", "facet", "value"),)


class ListingAlertModel(Base):
    """Ledger of (listing, user) pairs already notified."""

    __tablename__ = "listing_alerts"

    listing_id = Column(String(64), primary_key=True, nullable=False)
    user_id = Column(String(64), primary_key=True, nullable=False)
    sent_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_listing_alerts_sent_at", "sent_at"),)


def _facet_pairs(record: PreferenceRecord) -> List[tuple]:
    pairs = []
    for facet_name, field_name in FACET_FIELDS.items():
        for value in getattr(record, field_name):
            pairs.append((facet_name, value))
    return pairs


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes that do not exist yet (idempotent)."""
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)
        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")
    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
