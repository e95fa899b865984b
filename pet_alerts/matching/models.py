"""Data models for the matching engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class Facet(str, Enum):
    """Independent dimensions of a preference."""

    SPECIES = "species"
    BREED = "breed"
    AGE = "age"
    SIZE = "size"


@dataclass
class MatchResult:
    """Result of evaluating one listing against one preference record.

    Ephemeral: lives for the duration of a single dispatch cycle.

    Attributes:
        user_id: Owner of the evaluated preference record
        listing_id: Listing that triggered the evaluation
        is_match: True when every facet is satisfied and alerts are enabled
        failed_facets: Facets that rejected the listing (empty on a match)
        alerts_disabled: True when the record was rejected for wants_alerts=False
    """

    user_id: str
    listing_id: str
    is_match: bool
    failed_facets: List[Facet] = field(default_factory=list)
    alerts_disabled: bool = False

    @property
    def reason(self) -> str:
        """Short explanation for logs."""
        if self.is_match:
            return "all facets satisfied"
        if self.alerts_disabled:
            return "alerts disabled"
        return "failed facets: " + ", ".join(f.value for f in self.failed_facets)
