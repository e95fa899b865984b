"""Data models for listing alert cycles."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from pet_alerts.notifications.models import NotificationOutcome


class CycleState(str, Enum):
    """Phase of a match-and-notify cycle. Idle is both start and end."""

    IDLE = "idle"
    SELECTING = "selecting"
    DISPATCHING = "dispatching"


class CycleStatus(str, Enum):
    COMPLETED = "completed"
    ABANDONED = "abandoned"


@dataclass
class CycleResult:
    """
    Outcome of one match-and-notify cycle for one listing.

    Attributes:
        listing_id: Listing the cycle ran for
        status: completed, or abandoned after a store or unexpected failure
        final_state: Last state entered before the cycle returned to idle
        candidate_count: Preference records that matched the listing
        outcomes: One NotificationOutcome per candidate
        delivered_count: Notifications the sender accepted
        failed_count: Notifications that failed (duplicates excluded)
        duration_seconds: Wall time of the cycle
        error: Failure message for abandoned cycles
    """

    listing_id: str
    status: CycleStatus
    final_state: CycleState
    candidate_count: int = 0
    outcomes: List[NotificationOutcome] = field(default_factory=list)
    delivered_count: int = 0
    failed_count: int = 0
    duration_seconds: float = 0.0
    error: Optional[str] = None

    def __post_init__(self):
        """Derive counts from outcomes when they were not given."""
        if self.outcomes and not (self.delivered_count or self.failed_count):
            self.delivered_count = sum(1 for o in self.outcomes if o.delivered)
            self.failed_count = sum(1 for o in self.outcomes if o.failed)

    @property
    def abandoned(self) -> bool:
        return self.status == CycleStatus.ABANDONED

    @property
    def duplicate_count(self) -> int:
        return sum(1 for o in self.outcomes if o.duplicate)
