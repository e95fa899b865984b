"""Listing alert orchestration: one background cycle per new listing."""

from .models import CycleResult, CycleState, CycleStatus
from .orchestrator import ListingAlertOrchestrator

__all__ = [
    "CycleResult",
    "CycleState",
    "CycleStatus",
    "ListingAlertOrchestrator",
]
