"""Core domain models for adoption preferences and pet listings.

This module defines the data structures used throughout the application:
- PreferenceRecord: a user's standing adoption-alert criteria
- AgeRange: optional inclusive age bounds (years)
- Recipient: contact details used to address a notification
- ListingCreatedEvent: raw payload raised by the pet-creation handler
- ListingSnapshot: immutable projection of a listing used for matching
- CoarseFilter: the part of the match predicate pushed down to storage
"""

from enum import Enum
from typing import FrozenSet, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

from pet_alerts.config.models import EmptyFacetPolicy
from pet_alerts.utils.tags import normalize_tag, normalize_tag_set


class AgeUnit(str, Enum):
    """Units a shelter may use for a pet's age."""

    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


class AgeRange(BaseModel):
    """Inclusive age bounds in years. A missing bound is unbounded."""

    min: Optional[float] = Field(None, ge=0, description="Youngest accepted age (years)")
    max: Optional[float] = Field(None, ge=0, description="Oldest accepted age (years)")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_bounds(self):
        """Reject inverted ranges."""
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"ageRange.min ({self.min}) is greater than ageRange.max ({self.max})")
        return self

    @property
    def is_unbounded(self) -> bool:
        """True when neither bound is set."""
        return self.min is None and self.max is None

    def contains(self, age: float) -> bool:
        """Check whether an age in years falls inside the range (bounds inclusive)."""
        if self.min is not None and age < self.min:
            return False
        if self.max is not None and age > self.max:
            return False
        return True


class Recipient(BaseModel):
    """Where to send a notification for one user."""

    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None

    model_config = {"frozen": True}


class PreferenceRecord(BaseModel):
    """A user's standing adoption-alert criteria.

    Facet sets are normalized on construction (whitespace collapsed,
    case-folded), so stored and compared values are always canonical.
    Field names from the profile API (camelCase) are accepted as aliases.
    """

    user_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("user_id", "userId"),
        description="Owning user; immutable",
    )
    email: Optional[str] = Field(None, description="Recipient address from the user profile")
    name: Optional[str] = Field(None, description="Recipient display name")
    wants_alerts: bool = Field(
        False,
        validation_alias=AliasChoices("wants_alerts", "wantsAlerts", "receivePetAlerts"),
        description="When false the record never matches",
    )
    species: FrozenSet[str] = Field(default_factory=frozenset)
    breeds: FrozenSet[str] = Field(default_factory=frozenset)
    age_range: Optional[AgeRange] = Field(
        None, validation_alias=AliasChoices("age_range", "ageRange")
    )
    size: FrozenSet[str] = Field(default_factory=frozenset)

    model_config = {"frozen": True}

    @field_validator("species", "breeds", "size", mode="before")
    @classmethod
    def normalize_facet(cls, v):
        """Canonicalize facet values."""
        return normalize_tag_set(v)

    @field_validator("user_id")
    @classmethod
    def strip_user_id(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("user_id cannot be empty or whitespace-only")
        return stripped

    @field_validator("age_range")
    @classmethod
    def drop_unbounded_range(cls, v: Optional[AgeRange]) -> Optional[AgeRange]:
        """An ageRange with neither bound behaves exactly like no ageRange."""
        if v is not None and v.is_unbounded:
            return None
        return v

    @property
    def recipient(self) -> Recipient:
        return Recipient(user_id=self.user_id, email=self.email, name=self.name)


class PetAge(BaseModel):
    """Age as entered by the shelter."""

    value: float
    unit: AgeUnit = AgeUnit.YEARS


class ListingCreatedEvent(BaseModel):
    """Payload raised right after a new pet listing is persisted.

    Only listing_id is required here. species, size and age are checked
    when the event is turned into a ListingSnapshot.
    """

    listing_id: str = Field(
        ..., validation_alias=AliasChoices("listing_id", "listingId", "_id", "id")
    )
    name: Optional[str] = None
    species: Optional[str] = None
    breed: Optional[str] = None
    age: Optional[PetAge] = None
    size: Optional[str] = None

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator("listing_id", mode="before")
    @classmethod
    def coerce_listing_id(cls, v):
        """Document-store ids arrive as ObjectId-like objects; keep their string form."""
        return v if v is None else str(v)


class ListingSnapshot(BaseModel):
    """Immutable projection of a listing at the moment it was created.

    species, breed and size hold normalized tags used for matching;
    pet_name, breed_label and age_label keep the shelter's wording for
    notification text.
    """

    listing_id: str
    pet_name: str
    species: str
    breed: Optional[str] = None
    size: str
    normalized_age: float = Field(..., ge=0, description="Age in years")
    age_label: str
    breed_label: Optional[str] = None

    model_config = {"frozen": True}

    @field_validator("species", "size")
    @classmethod
    def normalize_required_tag(cls, v: str) -> str:
        normalized = normalize_tag(v)
        if not normalized:
            raise ValueError("Field cannot be empty or whitespace-only")
        return normalized

    @field_validator("breed")
    @classmethod
    def normalize_breed(cls, v: Optional[str]) -> Optional[str]:
        normalized = normalize_tag(v)
        return normalized or None


class CoarseFilter(BaseModel):
    """Storage-level approximation of the match predicate.

    Covers only the indexable facets: wants_alerts, species and size.
    Breed and age are left to the in-process predicate.
    """

    species: str
    size: str
    empty_facet: EmptyFacetPolicy = EmptyFacetPolicy.ANY

    model_config = {"frozen": True}

    @classmethod
    def for_listing(
        cls, listing: ListingSnapshot, empty_facet: EmptyFacetPolicy = EmptyFacetPolicy.ANY
    ) -> "CoarseFilter":
        return cls(species=listing.species, size=listing.size, empty_facet=empty_facet)
